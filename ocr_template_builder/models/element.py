"""
Recognition data models

Shapes returned by the recognition provider, validated once at the
ingestion boundary. Elements are frozen: nothing downstream may mutate them.
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ElementKind(str, Enum):
    """Kinds of recognized elements"""
    LABEL = "label"
    INPUT = "input"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"
    TABLE = "table"
    TEXT = "text"


class BoundingBox(BaseModel):
    """Axis-aligned box, either normalized (0-1) or in source image pixels"""
    model_config = ConfigDict(frozen=True)

    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0
    normalized: Optional[bool] = Field(
        default=None,
        description="Explicit unit flag; inferred from the values when missing",
    )

    @property
    def is_normalized(self) -> bool:
        if self.normalized is not None:
            return self.normalized
        return all(v <= 1 for v in (self.left, self.top, self.width, self.height))

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def to_pixels(self, image_width: float, image_height: float) -> "BoundingBox":
        """Promote to pixel space. Pixel boxes are returned unchanged."""
        if not self.is_normalized:
            return self
        return BoundingBox(
            left=self.left * image_width,
            top=self.top * image_height,
            width=self.width * image_width,
            height=self.height * image_height,
            normalized=False,
        )

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


class RecognizedElement(BaseModel):
    """One OCR-detected unit on one page"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default="", description="Element ID, assigned at ingestion when missing")
    text: str = ""
    kind: ElementKind = Field(default=ElementKind.TEXT, alias="type")
    confidence: float = Field(default=0.0, description="Provider confidence 0-100")
    bounding_box: BoundingBox = Field(default_factory=BoundingBox, alias="boundingBox")
    page_number: Optional[int] = Field(default=None, alias="pageNumber", description="1-indexed")
    value: Optional[str] = None
    options: List[str] = Field(default_factory=list)

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, v: Any) -> Any:
        if isinstance(v, ElementKind):
            return v
        text = str(v or "").strip().lower()
        if text == "selection":
            return ElementKind.SELECT
        try:
            return ElementKind(text)
        except ValueError:
            return ElementKind.TEXT

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        try:
            c = float(v)
        except (TypeError, ValueError):
            return 0.0
        if c != c:  # NaN
            return 0.0
        return max(0.0, min(100.0, c))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class RecognitionPage(BaseModel):
    """One page of a paged recognition response"""
    raw_text: str = Field(default="", alias="rawText")
    elements: List[Any] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class FlatResult(BaseModel):
    """Single-page (or page-less) response: a flat element list"""
    shape: Literal["flat"] = "flat"
    elements: List[Any] = Field(default_factory=list)
    raw_text: str = Field(default="", alias="rawText")

    model_config = ConfigDict(populate_by_name=True)


class PagedResult(BaseModel):
    """Multi-page response: one entry per page"""
    shape: Literal["paged"] = "paged"
    pages: List[RecognitionPage] = Field(default_factory=list)


RecognitionResult = Annotated[Union[FlatResult, PagedResult], Field(discriminator="shape")]
