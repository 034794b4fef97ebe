"""
End-to-end synthesis pass

recognition payload -> per-page elements -> rows -> label/input pairs ->
fields -> sections -> draft. Each step is a pure function over immutable
snapshots; nothing here holds state between calls.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ocr_template_builder.config.settings import ROW_TOLERANCE
from ocr_template_builder.fields.synthesizer import synthesize_field, synthesize_pair
from ocr_template_builder.layout.grouping import group_by_rows
from ocr_template_builder.layout.matching import INPUT_KINDS, LABEL_KINDS, match_labels_to_inputs
from ocr_template_builder.models.element import ElementKind, RecognizedElement
from ocr_template_builder.models.field import GeneratedField, TemplateDraft
from ocr_template_builder.pipeline.ingest import RecognizedDocument, normalize
from ocr_template_builder.template.assembler import assemble
from ocr_template_builder.template.sections import SectionMap, detect_sections

logger = logging.getLogger(__name__)

# 1-based page number -> natural image (width, height)
ImageSizes = Dict[int, Tuple[float, float]]


@dataclass(frozen=True)
class BuildResult:
    document: RecognizedDocument
    fields: List[GeneratedField] = field(default_factory=list)
    section_map: SectionMap = field(default_factory=dict)
    draft: TemplateDraft = field(default_factory=TemplateDraft)


def synthesize_page(
    elements: Sequence[RecognizedElement],
    page_index: int,
    start_index: int = 0,
    tolerance: float = ROW_TOLERANCE,
    image_size: Optional[Tuple[float, float]] = None,
    max_distance: Optional[float] = None,
) -> List[GeneratedField]:
    """Fields for one page, numbered from `start_index`.

    Multi-element rows pair labels with inputs; inputs left over become
    standalone fields. Rows of one element, and elements of other kinds,
    are synthesized on their own.
    """
    fields: List[GeneratedField] = []
    index = start_index

    for row in group_by_rows(elements, tolerance=tolerance, image_size=image_size):
        if len(row) > 1:
            matched = match_labels_to_inputs(row, image_size=image_size, max_distance=max_distance)
            for label, input_element in matched.pairs:
                if input_element is not None:
                    fields.append(synthesize_pair(label, input_element, page_index, index))
                else:
                    fields.append(synthesize_field(label, page_index, index))
                index += 1
            for input_element in matched.unmatched_inputs:
                fields.append(synthesize_field(input_element, page_index, index))
                index += 1
            others = [el for el in row if el.kind not in LABEL_KINDS | INPUT_KINDS]
        else:
            others = list(row)
        for el in others:
            fields.append(synthesize_field(el, page_index, index))
            index += 1
    return fields


def build_fields(
    document: RecognizedDocument,
    tolerance: float = ROW_TOLERANCE,
    image_sizes: Optional[ImageSizes] = None,
    max_distance: Optional[float] = None,
) -> List[GeneratedField]:
    """Synthesize every page; the running index continues across pages"""
    fields: List[GeneratedField] = []
    for page_index, page in enumerate(document.pages):
        size = (image_sizes or {}).get(page_index + 1)
        fields.extend(synthesize_page(page.elements, page_index, len(fields),
                                      tolerance=tolerance, image_size=size,
                                      max_distance=max_distance))
    logger.info("Synthesized %d field(s) from %d element(s)", len(fields), document.element_count)
    return fields


def build_from_document(
    document: RecognizedDocument,
    name: str = "",
    tolerance: float = ROW_TOLERANCE,
    image_sizes: Optional[ImageSizes] = None,
    max_distance: Optional[float] = None,
    detect: bool = True,
) -> BuildResult:
    fields = build_fields(document, tolerance=tolerance, image_sizes=image_sizes, max_distance=max_distance)
    section_map = detect_sections(fields, image_sizes=image_sizes) if detect else {}
    draft = assemble(fields, section_map, name=name)
    return BuildResult(document=document, fields=fields, section_map=section_map, draft=draft)


def build_template(payload: Mapping[str, Any], name: str = "", **options: Any) -> BuildResult:
    """Run the whole pipeline on a raw recognition payload"""
    return build_from_document(normalize(payload), name=name, **options)


def change_element_kind(
    document: RecognizedDocument,
    page_index: int,
    element_id: str,
    kind: ElementKind,
) -> RecognizedDocument:
    """New document with one element re-tagged; the original is untouched"""
    elements = document.elements(page_index)
    for i, el in enumerate(elements):
        if el.id == element_id:
            replaced = el.model_copy(update={"kind": ElementKind(kind)})
            return document.replace_page(page_index, elements[:i] + (replaced,) + elements[i + 1:])
    raise KeyError(f"Element not found on page {page_index + 1}: {element_id}")
