import logging

from .BalancedTree import Node, Tree, warmup
from .config import TreeConfig
from .errors import BSTError, InvalidArgumentError, StaleNodeError
from .logger_config import configure_logger


logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BSTError",
    "InvalidArgumentError",
    "Node",
    "StaleNodeError",
    "Tree",
    "TreeConfig",
    "configure_logger",
    "warmup",
]
