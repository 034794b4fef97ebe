"""
Field list editing

Every operation takes the current list and returns a new one; `order` is
renumbered 0..n-1 afterwards and field ids are never reused.
"""

import logging
import uuid
from typing import Any, List, Optional, Sequence, Tuple

from ocr_template_builder.fields.synthesizer import synthesize_field
from ocr_template_builder.fields.validation import apply_rules
from ocr_template_builder.geometry.transform import ViewTransform
from ocr_template_builder.models.element import BoundingBox, ElementKind, RecognizedElement
from ocr_template_builder.models.field import FieldType, GeneratedField

logger = logging.getLogger(__name__)

EDITABLE = ("label", "name", "type", "required", "is_phi_field", "audit_required",
            "placeholder", "help_text")


def _reindex(fields: Sequence[GeneratedField]) -> List[GeneratedField]:
    return [f if f.order == i else f.model_copy(update={"order": i}) for i, f in enumerate(fields)]


def _index_of(fields: Sequence[GeneratedField], field_id: str) -> int:
    for i, f in enumerate(fields):
        if f.id == field_id:
            return i
    raise KeyError(f"Field not found: {field_id}")


def edit_field(fields: Sequence[GeneratedField], field_id: str, **changes: Any) -> List[GeneratedField]:
    """Apply an edit-form save to one field and re-derive its rules."""
    unknown = set(changes) - set(EDITABLE)
    if unknown:
        raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
    idx = _index_of(fields, field_id)
    updates = {k: v for k, v in changes.items() if v is not None}
    # round-trip through validation so a str type becomes a FieldType
    data = fields[idx].model_dump()
    data.update(updates)
    edited = apply_rules(GeneratedField.model_validate(data))
    out = list(fields)
    out[idx] = edited
    return _reindex(out)


def remove_field(fields: Sequence[GeneratedField], field_id: str) -> List[GeneratedField]:
    idx = _index_of(fields, field_id)
    out = list(fields)
    del out[idx]
    return _reindex(out)


def move_field(fields: Sequence[GeneratedField], from_index: int, to_index: int) -> List[GeneratedField]:
    """Drag-drop reorder: the field at `from_index` lands at `to_index`."""
    out = list(fields)
    if not out:
        return out
    if not 0 <= from_index < len(out):
        raise IndexError(f"No field at position {from_index}")
    to_index = max(0, min(len(out) - 1, to_index))
    out.insert(to_index, out.pop(from_index))
    return _reindex(out)


def element_from_capture(
    viewport_box: BoundingBox,
    transform: ViewTransform,
    page_index: int,
    text: str = "",
    kind: ElementKind = ElementKind.INPUT,
) -> RecognizedElement:
    """Promote a captured viewport rectangle to a normalized element"""
    box = transform.box_from_viewport(viewport_box, normalized=True)
    return RecognizedElement(
        id=f"manual_{uuid.uuid4().hex[:8]}",
        text=text,
        kind=kind,
        confidence=100.0,
        bounding_box=box,
        page_number=page_index + 1,
    )


def add_manual_field(
    fields: Sequence[GeneratedField],
    viewport_box: BoundingBox,
    transform: ViewTransform,
    page_index: int,
    text: str = "",
    kind: ElementKind = ElementKind.INPUT,
    field_type: Optional[FieldType] = None,
) -> Tuple[List[GeneratedField], RecognizedElement]:
    """Turn a manual capture into a new field appended to the list.

    Returns the new list and the element created for the region so the
    caller can add it to the page.
    """
    element = element_from_capture(viewport_box, transform, page_index,
                                   text or f"Manual Field {len(fields) + 1}", kind)
    field = synthesize_field(element, page_index, len(fields),
                             field_id=f"field_{uuid.uuid4().hex[:8]}")
    if field_type is not None:
        field = apply_rules(field.model_copy(update={"type": FieldType(field_type)}))
    field.custom_attributes["manual"] = True
    logger.info("Added manual field %s on page %d", field.id, page_index + 1)
    return _reindex(list(fields) + [field]), element
