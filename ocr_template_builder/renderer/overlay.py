"""
Overlay renderer

Draws the current page image and confidence-coloured element boxes onto a
Pillow RGBA surface, and turns pointer gestures into pan or manual region
capture. Every state change goes through a method here and ends in
`repaint()`, so the surface always reflects the current state.

Image decode is two-step: `begin_load()` marks the page as pending and
`on_image_loaded()` / `on_image_error()` complete it. Nothing is transformed
before the image has loaded.
"""

import io
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from ocr_template_builder.config.settings import (
    FIT_MARGIN,
    HIGH_CONFIDENCE,
    LABEL_MAX_CHARS,
    MEDIUM_CONFIDENCE,
    MIN_CAPTURE_SIZE,
    ZOOM_STEP,
)
from ocr_template_builder.errors import ViewModeError
from ocr_template_builder.geometry.transform import CoordinateTransformer, ViewTransform
from ocr_template_builder.models.element import BoundingBox, RecognizedElement
from ocr_template_builder.models.view import Point, ViewMode, ViewState

logger = logging.getLogger(__name__)

ImageSource = Union[str, bytes, Image.Image]
Color = Tuple[int, int, int, int]

BACKGROUND: Color = (245, 245, 245, 255)
# (stroke, fill) per confidence tier
HIGH_COLORS: Tuple[Color, Color] = ((76, 175, 80, 200), (76, 175, 80, 40))
MEDIUM_COLORS: Tuple[Color, Color] = ((255, 193, 7, 200), (255, 193, 7, 40))
LOW_COLORS: Tuple[Color, Color] = ((244, 67, 54, 200), (244, 67, 54, 40))
LABEL_BG: Color = (0, 0, 0, 180)
LABEL_FG: Color = (255, 255, 255, 255)
SELECTED: Color = (33, 150, 243, 255)
SELECTION_DASH: Color = (33, 150, 243, 255)
ERROR_FILL: Color = (255, 235, 238, 255)
ERROR_BORDER: Color = (211, 47, 47, 255)
ERROR_TEXT: Color = (183, 28, 28, 255)

LOAD_ERROR_MESSAGE = "Failed to load document image"

TRANSITIONS = {
    ViewMode.UPLOAD: {ViewMode.PROCESSING},
    ViewMode.PROCESSING: {ViewMode.REVIEW, ViewMode.UPLOAD},
    ViewMode.REVIEW: {ViewMode.FIELDS},
    ViewMode.FIELDS: {ViewMode.REVIEW},
}


def confidence_colors(confidence: float) -> Tuple[Color, Color]:
    if confidence > HIGH_CONFIDENCE:
        return HIGH_COLORS
    if confidence >= MEDIUM_CONFIDENCE:
        return MEDIUM_COLORS
    return LOW_COLORS


def label_text(element: RecognizedElement, with_confidence: bool = True) -> str:
    text = element.text
    if len(text) > LABEL_MAX_CHARS:
        text = text[:LABEL_MAX_CHARS] + "…"
    if with_confidence:
        text = f"{text} {round(element.confidence)}%"
    return text


def open_image(source: ImageSource) -> Image.Image:
    """Default decoder: path, raw bytes or an already-open image"""
    if isinstance(source, Image.Image):
        return source.convert("RGBA")
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    with Image.open(source) as img:
        return img.convert("RGBA")


@dataclass
class _Gesture:
    kind: str  # "capture" or "pan"
    start: Tuple[float, float]
    current: Tuple[float, float]


class OverlayRenderer:
    """Review canvas for one document"""

    def __init__(
        self,
        width: int = 1024,
        height: int = 768,
        view: Optional[ViewState] = None,
        margin: float = FIT_MARGIN,
        loader: Callable[[ImageSource], Image.Image] = open_image,
        on_capture: Optional[Callable[[BoundingBox], None]] = None,
    ):
        self.width = int(width)
        self.height = int(height)
        self.view = view or ViewState()
        self.margin = margin
        self.loader = loader
        self.on_capture = on_capture
        self.font = ImageFont.load_default(size=12)

        self.mode = ViewMode.UPLOAD
        self.surface = Image.new("RGBA", (self.width, self.height), BACKGROUND)
        self.elements: Tuple[RecognizedElement, ...] = ()
        self.image: Optional[Image.Image] = None
        self.transformer: Optional[CoordinateTransformer] = None
        self.error_message: Optional[str] = None
        self.selected_id: Optional[str] = None
        self.capture_enabled = False
        self.captured_boxes: List[BoundingBox] = []
        self._gesture: Optional[_Gesture] = None
        self._load_token = 0
        self._loading = False

    # view mode

    def transition(self, target: ViewMode) -> None:
        target = ViewMode(target)
        if target not in TRANSITIONS[self.mode]:
            raise ViewModeError(f"Cannot switch from {self.mode.value} to {target.value}")
        logger.debug("View mode %s -> %s", self.mode.value, target.value)
        self.mode = target
        self._gesture = None
        self.repaint()

    def reset(self) -> None:
        """Back to upload from any mode, dropping the page and its elements"""
        self.mode = ViewMode.UPLOAD
        self.view = ViewState()
        self.elements = ()
        self.image = None
        self.transformer = None
        self.error_message = None
        self.selected_id = None
        self.captured_boxes = []
        self._gesture = None
        self._load_token += 1
        self._loading = False
        self.repaint()

    # image loading

    @property
    def image_ready(self) -> bool:
        return self.transformer is not None

    def begin_load(self) -> int:
        """Mark a new page image as pending; returns the load token"""
        self._load_token += 1
        self._loading = True
        self.image = None
        self.transformer = None
        self.error_message = None
        self.repaint()
        return self._load_token

    def on_image_loaded(self, image: Image.Image, token: Optional[int] = None) -> bool:
        """Decode completion. Stale tokens (superseded loads) are ignored."""
        if token is not None and token != self._load_token:
            return False
        self._loading = False
        self.image = image.convert("RGBA") if image.mode != "RGBA" else image
        self.transformer = CoordinateTransformer(
            self.image.width, self.image.height, self.width, self.height, self.margin
        )
        self.error_message = None
        self.repaint()
        return True

    def on_image_error(self, message: str = LOAD_ERROR_MESSAGE, token: Optional[int] = None) -> bool:
        if token is not None and token != self._load_token:
            return False
        logger.warning("Page image failed to load: %s", message)
        self._loading = False
        self.image = None
        self.transformer = None
        self.error_message = message
        self.repaint()
        return True

    def load_image(self, source: Optional[ImageSource]) -> bool:
        """Decode `source` with the configured loader; False on failure"""
        token = self.begin_load()
        if source is None:
            self.on_image_error(token=token)
            return False
        try:
            image = self.loader(source)
        except (OSError, UnidentifiedImageError, ValueError) as e:
            logger.debug("Decoder error: %s", e)
            self.on_image_error(token=token)
            return False
        return self.on_image_loaded(image, token=token)

    def show_page(self, page_index: int, source: Optional[ImageSource],
                  elements: Sequence[RecognizedElement]) -> None:
        """Repaint listener for MultiPageCoordinator"""
        self.view.current_page_index = page_index
        self.elements = tuple(elements)
        self.selected_id = None
        self.load_image(source)

    def set_elements(self, elements: Sequence[RecognizedElement]) -> None:
        self.elements = tuple(elements)
        self.repaint()

    def current_transform(self) -> Optional[ViewTransform]:
        if self.transformer is None:
            return None
        return self.transformer.at(self.view.zoom_level, self.view.pan_offset)

    # view controls

    def set_zoom(self, level: float) -> float:
        self.view.zoom_level = level
        self.repaint()
        return self.view.zoom_level

    def zoom_in(self) -> float:
        return self.set_zoom(self.view.zoom_level + ZOOM_STEP)

    def zoom_out(self) -> float:
        return self.set_zoom(self.view.zoom_level - ZOOM_STEP)

    def pan_by(self, dx: float, dy: float) -> None:
        offset = self.view.pan_offset
        self.view.pan_offset = Point(x=offset.x + dx, y=offset.y + dy)
        self.repaint()

    def reset_view(self) -> None:
        self.view.zoom_level = 1.0
        self.view.pan_offset = Point()
        self.repaint()

    def toggle_bounding_boxes(self) -> bool:
        self.view.show_bounding_boxes = not self.view.show_bounding_boxes
        self.repaint()
        return self.view.show_bounding_boxes

    def toggle_confidence_scores(self) -> bool:
        self.view.show_confidence_scores = not self.view.show_confidence_scores
        self.repaint()
        return self.view.show_confidence_scores

    def resize(self, width: int, height: int) -> None:
        """New viewport size; the fit scale is re-derived for the loaded image"""
        self.width, self.height = int(width), int(height)
        if self.image is not None:
            self.transformer = CoordinateTransformer(
                self.image.width, self.image.height, self.width, self.height, self.margin
            )
        self.repaint()

    # pointer input

    def _accepts_pointer(self) -> bool:
        return self.mode == ViewMode.REVIEW and self.image_ready

    def pointer_down(self, x: float, y: float) -> bool:
        if not self._accepts_pointer():
            return False
        kind = "capture" if self.capture_enabled else "pan"
        self._gesture = _Gesture(kind=kind, start=(x, y), current=(x, y))
        return True

    def pointer_move(self, x: float, y: float) -> None:
        gesture = self._gesture
        if gesture is None:
            return
        if gesture.kind == "pan":
            dx, dy = x - gesture.current[0], y - gesture.current[1]
            gesture.current = (x, y)
            self.pan_by(dx, dy)
        else:
            gesture.current = (x, y)
            self.repaint()

    def pointer_up(self, x: float, y: float) -> Optional[BoundingBox]:
        """Finish the gesture; returns the captured box, if any"""
        gesture = self._gesture
        if gesture is None:
            return None
        gesture.current = (x, y)
        self._gesture = None
        box = None
        if gesture.kind == "capture":
            box = self._selection_box(gesture)
            if box.width > MIN_CAPTURE_SIZE and box.height > MIN_CAPTURE_SIZE:
                self.captured_boxes.append(box)
                if self.on_capture is not None:
                    self.on_capture(box)
            else:
                box = None
        self.repaint()
        return box

    def cancel_gesture(self) -> None:
        self._gesture = None
        self.repaint()

    @staticmethod
    def _selection_box(gesture: _Gesture) -> BoundingBox:
        (sx, sy), (cx, cy) = gesture.start, gesture.current
        return BoundingBox(left=min(sx, cx), top=min(sy, cy),
                           width=abs(cx - sx), height=abs(cy - sy), normalized=False)

    def element_at(self, x: float, y: float) -> Optional[RecognizedElement]:
        """Topmost element under a viewport point"""
        transform = self.current_transform()
        if transform is None:
            return None
        for element in reversed(self.elements):
            if transform.box_to_viewport(element.bounding_box).contains(x, y):
                return element
        return None

    def click(self, x: float, y: float) -> Optional[RecognizedElement]:
        if self.mode != ViewMode.REVIEW:
            return None
        element = self.element_at(x, y)
        self.selected_id = element.id if element else None
        self.repaint()
        return element

    # drawing

    def repaint(self) -> Image.Image:
        surface = Image.new("RGBA", (self.width, self.height), BACKGROUND)
        transform = self.current_transform()

        if transform is not None and self.image is not None:
            self._draw_image(surface, transform)
            if self.mode == ViewMode.REVIEW and self.view.show_bounding_boxes:
                surface = Image.alpha_composite(surface, self._box_layer(transform))
        elif self.error_message:
            self._draw_error_panel(surface, self.error_message)

        if self._gesture is not None and self._gesture.kind == "capture":
            self._draw_dashed_rect(ImageDraw.Draw(surface), self._selection_box(self._gesture))

        self.surface = surface
        return surface

    def _draw_image(self, surface: Image.Image, t: ViewTransform) -> None:
        # only the part of the page that lands inside the viewport is resampled
        iw, ih = self.image.size
        x0 = max(0.0, -t.offset_x / t.scale)
        y0 = max(0.0, -t.offset_y / t.scale)
        x1 = min(float(iw), (self.width - t.offset_x) / t.scale)
        y1 = min(float(ih), (self.height - t.offset_y) / t.scale)
        if x1 <= x0 or y1 <= y0:
            return
        crop = (int(math.floor(x0)), int(math.floor(y0)), int(math.ceil(x1)), int(math.ceil(y1)))
        dest_x, dest_y = t.point_to_viewport(crop[0], crop[1])
        size = (max(1, round((crop[2] - crop[0]) * t.scale)), max(1, round((crop[3] - crop[1]) * t.scale)))
        region = self.image.crop(crop).resize(size, Image.Resampling.BILINEAR)
        surface.paste(region, (round(dest_x), round(dest_y)), region)

    def _box_layer(self, t: ViewTransform) -> Image.Image:
        layer = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        for element in self.elements:
            box = t.box_to_viewport(element.bounding_box)
            x0, y0 = box.left, box.top
            x1, y1 = x0 + max(0.0, box.width), y0 + max(0.0, box.height)
            stroke, fill = confidence_colors(element.confidence)
            draw.rectangle([x0, y0, x1, y1], fill=fill, outline=stroke, width=2)
            if element.id and element.id == self.selected_id:
                draw.rectangle([x0 - 2, y0 - 2, x1 + 2, y1 + 2], outline=SELECTED, width=3)
            if element.text:
                self._draw_label(draw, element, x0, y0, y1)
        return layer

    def _draw_label(self, draw: ImageDraw.ImageDraw, element: RecognizedElement,
                    x: float, top: float, bottom: float) -> None:
        text = label_text(element, self.view.show_confidence_scores)
        left, upper, right, lower = draw.textbbox((0, 0), text, font=self.font)
        pad = 2
        w, h = right - left + 2 * pad, lower - upper + 2 * pad
        y = top - h
        if y < 0:
            y = bottom  # flip below the box
        draw.rectangle([x, y, x + w, y + h], fill=LABEL_BG)
        draw.text((x + pad - left, y + pad - upper), text, font=self.font, fill=LABEL_FG)

    def _draw_error_panel(self, surface: Image.Image, message: str) -> None:
        draw = ImageDraw.Draw(surface)
        left, upper, right, lower = draw.textbbox((0, 0), message, font=self.font)
        pw = max(1, min(self.width - 1, max(int(self.width * 0.6), right - left + 24)))
        ph = 80
        x0, y0 = (self.width - pw) // 2, (self.height - ph) // 2
        draw.rectangle([x0, y0, x0 + pw, y0 + ph], fill=ERROR_FILL, outline=ERROR_BORDER, width=2)
        tx = x0 + (pw - (right - left)) / 2 - left
        ty = y0 + (ph - (lower - upper)) / 2 - upper
        draw.text((tx, ty), message, font=self.font, fill=ERROR_TEXT)

    @staticmethod
    def _draw_dashed_rect(draw: ImageDraw.ImageDraw, box: BoundingBox, dash: float = 6.0,
                          gap: float = 4.0) -> None:
        corners = [(box.left, box.top), (box.right, box.top),
                   (box.right, box.bottom), (box.left, box.bottom)]
        for (ax, ay), (bx, by) in zip(corners, corners[1:] + corners[:1]):
            length = math.hypot(bx - ax, by - ay)
            if length == 0:
                continue
            ux, uy = (bx - ax) / length, (by - ay) / length
            pos = 0.0
            while pos < length:
                end = min(pos + dash, length)
                draw.line([(ax + ux * pos, ay + uy * pos), (ax + ux * end, ay + uy * end)],
                          fill=SELECTION_DASH, width=2)
                pos = end + gap

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.surface.save(buf, format="PNG")
        return buf.getvalue()
