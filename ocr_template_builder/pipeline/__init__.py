"""Recognition result -> fields -> template draft"""

from ocr_template_builder.pipeline.builder import (
    BuildResult,
    build_fields,
    build_from_document,
    build_template,
    change_element_kind,
)
from ocr_template_builder.pipeline.ingest import RecognizedDocument, normalize, parse_result
from ocr_template_builder.pipeline.pages import MultiPageCoordinator

__all__ = [
    "BuildResult",
    "build_fields",
    "build_from_document",
    "build_template",
    "change_element_kind",
    "RecognizedDocument",
    "normalize",
    "parse_result",
    "MultiPageCoordinator",
]
