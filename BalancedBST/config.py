from dataclasses import dataclass


@dataclass
class TreeConfig:
    """
    Arena sizing for a Tree.

    Attributes:
        initial_capacity (int): Minimum number of node slots allocated by
            `Tree.build`, even for small or empty input.
        growth_factor (int): Multiplier applied to the capacity when an
            insert finds the arena full.
    """

    initial_capacity: int = 16
    growth_factor:    int = 2

    def __post_init__(self) -> None:
        if self.initial_capacity < 1:
            raise ValueError(
                f"initial_capacity must be at least 1, not {self.initial_capacity}"
            )

        if self.growth_factor < 2:
            raise ValueError(
                f"growth_factor must be at least 2, not {self.growth_factor}"
            )
