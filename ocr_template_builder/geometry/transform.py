"""
Coordinate transforms between the three spaces the overlay works in:

- element space: normalized (0-1) or source-image pixels, per BoundingBox
- image space: natural pixels of the decoded page image
- viewport space: what is drawn, after fit scale, zoom and pan
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ocr_template_builder.config.settings import FIT_MARGIN
from ocr_template_builder.errors import ImageNotReadyError
from ocr_template_builder.models.element import BoundingBox
from ocr_template_builder.models.view import Point


@dataclass(frozen=True)
class ViewTransform:
    """Image <-> viewport mapping for one zoom/pan state."""
    scale: float
    offset_x: float
    offset_y: float
    image_width: float
    image_height: float

    def point_to_viewport(self, x: float, y: float) -> Tuple[float, float]:
        return x * self.scale + self.offset_x, y * self.scale + self.offset_y

    def point_from_viewport(self, vx: float, vy: float) -> Tuple[float, float]:
        return (vx - self.offset_x) / self.scale, (vy - self.offset_y) / self.scale

    def box_to_viewport(self, box: BoundingBox) -> BoundingBox:
        px = box.to_pixels(self.image_width, self.image_height)
        x, y = self.point_to_viewport(px.left, px.top)
        return BoundingBox(left=x, top=y, width=px.width * self.scale,
                           height=px.height * self.scale, normalized=False)

    def box_from_viewport(self, box: BoundingBox, normalized: bool = False) -> BoundingBox:
        """Inverse of box_to_viewport; `normalized` selects the output unit."""
        x, y = self.point_from_viewport(box.left, box.top)
        w = box.width / self.scale
        h = box.height / self.scale
        if normalized:
            return BoundingBox(left=x / self.image_width, top=y / self.image_height,
                               width=w / self.image_width, height=h / self.image_height,
                               normalized=True)
        return BoundingBox(left=x, top=y, width=w, height=h, normalized=False)

    def image_rect(self) -> BoundingBox:
        """Where the whole page image lands in the viewport."""
        return self.box_to_viewport(BoundingBox(left=0, top=0, width=self.image_width,
                                                height=self.image_height, normalized=False))


class CoordinateTransformer:
    """Fit-to-viewport geometry for one decoded image.

    The fit scale is computed once, at construction (image load). Zoom and
    pan compose on top of it in `at()`, so neither re-derives the fit.
    """

    def __init__(
        self,
        image_width: float,
        image_height: float,
        viewport_width: float,
        viewport_height: float,
        margin: float = FIT_MARGIN,
    ):
        if not image_width or not image_height:
            raise ImageNotReadyError("Natural image size unknown; wait for the image to load")
        self.image_width = float(image_width)
        self.image_height = float(image_height)
        self.viewport_width = float(viewport_width)
        self.viewport_height = float(viewport_height)
        self.fit_scale = min(self.viewport_width / self.image_width,
                             self.viewport_height / self.image_height) * margin

    def at(self, zoom_level: float = 1.0, pan: Optional[Point] = None) -> ViewTransform:
        scale = self.fit_scale * zoom_level
        # centre the scaled image, then translate by pan in viewport space
        offset_x = (self.viewport_width - self.image_width * scale) / 2.0
        offset_y = (self.viewport_height - self.image_height * scale) / 2.0
        if pan is not None:
            offset_x += pan.x
            offset_y += pan.y
        return ViewTransform(scale, offset_x, offset_y, self.image_width, self.image_height)

    def to_pixels(self, box: BoundingBox) -> BoundingBox:
        return box.to_pixels(self.image_width, self.image_height)
