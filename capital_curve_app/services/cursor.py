from dataclasses import dataclass, replace

from capital_curve_app.errors import CursorInvariantError
from capital_curve_app.schemas import CurveConfig, CursorState
from capital_curve_app.services.progression import Direction, shift_tier


@dataclass
class StepCursor:
    """
    Position on the stepped curve.

    `remaining` is the number of tokens of the current tier that are still
    unsold, for every cursor and in both directions: walking forward consumes
    it, walking backward refills it.
    """

    step: int
    price: int
    level_size: int
    remaining: int

    @classmethod
    def genesis(cls, config: CurveConfig) -> "StepCursor":
        return cls(
            step=0,
            price=config.initial_price,
            level_size=config.initial_level_size,
            remaining=config.initial_level_size,
        )

    @classmethod
    def from_state(cls, state: CursorState) -> "StepCursor":
        return cls(
            step=state.step,
            price=state.price,
            level_size=state.level_size,
            remaining=state.remaining,
        )

    def to_state(self) -> CursorState:
        return CursorState(
            step=self.step,
            price=self.price,
            level_size=self.level_size,
            remaining=self.remaining,
        )

    def copy(self) -> "StepCursor":
        return replace(self)

    def sold_in_tier(self) -> int:
        return self.level_size - self.remaining

    def move(self, direction: Direction, config: CurveConfig) -> None:
        self.step, self.level_size, self.price = shift_tier(
            self.step, self.level_size, self.price, direction, config
        )
        # A fresh tier is entirely unsold going forward, entirely sold going back
        self.remaining = self.level_size if direction is Direction.ADVANCE else 0

    def advance(self, config: CurveConfig) -> None:
        self.move(Direction.ADVANCE, config)

    def regress(self, config: CurveConfig) -> None:
        self.move(Direction.REGRESS, config)

    def check(self, name: str = "cursor") -> None:
        if self.step < 0:
            raise CursorInvariantError(f"{name}: step={self.step} is negative")
        if self.price <= 0:
            raise CursorInvariantError(f"{name}: price={self.price} must be > 0")
        if not 0 <= self.remaining <= self.level_size:
            raise CursorInvariantError(
                f"{name}: remaining={self.remaining} outside [0, level_size={self.level_size}]"
            )
