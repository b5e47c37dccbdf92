"""Scene model: primitives plus canvas size, prior to rasterization."""

from pydantic import BaseModel, ConfigDict, Field

from code_canvas.types.primitives import Primitive

DEFAULT_CANVAS_SIZE = 512


class Scene(BaseModel):
    """An immutable snapshot of everything drawn on a square canvas."""

    model_config = ConfigDict(frozen=True)

    size: int = Field(default=DEFAULT_CANVAS_SIZE, gt=0)
    primitives: tuple[Primitive, ...] = ()

    def render_order(self) -> list[Primitive]:
        """Primitives sorted by layer; ties keep insertion order (stable sort)."""
        return sorted(self.primitives, key=lambda p: p.layer)

    @property
    def layer_count(self) -> int:
        """Number of distinct layers that hold at least one primitive."""
        return len({p.layer for p in self.primitives})

    def to_svg(self) -> str:
        """Serialize as an SVG document with elements in render order."""
        body = "\n".join(p.to_svg() for p in self.render_order())
        return (
            f'<svg width="{self.size}" height="{self.size}" '
            f'viewBox="0 0 {self.size} {self.size}" xmlns="http://www.w3.org/2000/svg">\n'
            f"{body}\n</svg>"
        )
