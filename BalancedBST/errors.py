class BSTError(Exception):
    """Base class for errors raised by BalancedBST."""


class InvalidArgumentError(BSTError, TypeError):
    """
    Raised when an operation receives an argument it cannot work with:
    a traversal callback that is not callable, or a value that is not numeric.
    """


class StaleNodeError(BSTError):
    """
    Raised when a Node is read after its tree was modified by `insert` or
    `delete`; its slot may since hold a different value or none at all.
    """
