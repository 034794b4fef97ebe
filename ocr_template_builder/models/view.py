"""View state for the review overlay. Holds no business data."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ocr_template_builder.config.settings import ZOOM_MAX, ZOOM_MIN


class ViewMode(str, Enum):
    UPLOAD = "upload"
    PROCESSING = "processing"
    REVIEW = "review"
    FIELDS = "fields"


class Point(BaseModel):
    x: float = 0.0
    y: float = 0.0


class ViewState(BaseModel):
    """Zoom, pan, current page and display toggles"""
    model_config = ConfigDict(validate_assignment=True)

    zoom_level: float = Field(default=1.0, description=f"Clamped to {ZOOM_MIN}-{ZOOM_MAX}")
    pan_offset: Point = Field(default_factory=Point)
    current_page_index: int = 0
    show_bounding_boxes: bool = True
    show_confidence_scores: bool = True

    @field_validator("zoom_level")
    @classmethod
    def _clamp_zoom(cls, v: float) -> float:
        return max(ZOOM_MIN, min(ZOOM_MAX, float(v)))
