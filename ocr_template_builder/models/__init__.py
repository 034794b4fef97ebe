"""Data models for the OCR template builder"""

from ocr_template_builder.models.element import (
    BoundingBox,
    ElementKind,
    FlatResult,
    PagedResult,
    RecognitionPage,
    RecognitionResult,
    RecognizedElement,
)
from ocr_template_builder.models.field import (
    FieldOption,
    FieldType,
    GeneratedField,
    TemplateDraft,
    TemplateSection,
    ValidationRule,
)
from ocr_template_builder.models.view import Point, ViewMode, ViewState

__all__ = [
    "BoundingBox",
    "ElementKind",
    "FlatResult",
    "PagedResult",
    "RecognitionPage",
    "RecognitionResult",
    "RecognizedElement",
    "FieldOption",
    "FieldType",
    "GeneratedField",
    "TemplateDraft",
    "TemplateSection",
    "ValidationRule",
    "Point",
    "ViewMode",
    "ViewState",
]
