"""Core geometry types."""

from pydantic import BaseModel, ConfigDict


class Point(BaseModel):
    """A 2D point in canvas pixels (origin top-left, y down)."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float
    y: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


def clamp_value(value: float, low: float, high: float) -> float:
    """Clamp a value to a range [low, high]."""
    return max(low, min(high, value))


def format_number(value: float) -> str:
    """Format a coordinate for SVG output without trailing zeros."""
    return format(value, ".10g")
