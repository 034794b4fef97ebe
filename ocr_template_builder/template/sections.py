from typing import Dict, List, Optional, Sequence, Tuple

from ocr_template_builder.config.settings import SECTION_GAP_PX, SECTION_GAP_RATIO
from ocr_template_builder.models.element import BoundingBox
from ocr_template_builder.models.field import GeneratedField

SectionMap = Dict[str, List[str]]


def _field_box(field: GeneratedField) -> Optional[BoundingBox]:
    raw = field.custom_attributes.get("bounding_box")
    if not raw:
        return None
    return BoundingBox.model_validate(raw)


def detect_sections(
    fields: Sequence[GeneratedField],
    gap_px: float = SECTION_GAP_PX,
    gap_ratio: float = SECTION_GAP_RATIO,
    image_sizes: Optional[Dict[int, Tuple[float, float]]] = None,
) -> SectionMap:
    """Split fields into sections at large vertical gaps.

    Walks fields in order. A new section starts on a page change or when a
    field sits more than the gap threshold below the previous one: `gap_px`
    for pixel boxes, `gap_ratio` of the page height for normalized ones.
    When `image_sizes` (1-based page -> (w, h)) is given, normalized boxes
    are promoted to pixels and `gap_px` applies throughout. Fields without
    a box join the current section.
    """
    sections: SectionMap = {}
    current: Optional[str] = None
    last_top: Optional[float] = None
    last_page: Optional[int] = None

    for field in fields:
        box = _field_box(field)
        page = field.page_number
        new_section = current is None or page != last_page

        if box is not None:
            size = (image_sizes or {}).get(page)
            if size is not None:
                box = box.to_pixels(*size)
            threshold = gap_ratio if box.is_normalized else gap_px
            if last_top is not None and box.top - last_top > threshold:
                new_section = True

        if new_section:
            current = f"section_{len(sections) + 1}"
            sections[current] = []
            last_top = None
        sections[current].append(field.id)
        if box is not None:
            last_top = box.top
        last_page = page
    return sections
