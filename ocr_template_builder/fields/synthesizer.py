"""
Field synthesis

Turns a recognized element (or a matched label/input pair) into a
GeneratedField. The text heuristics are exposed as plain functions so the
editor and tests can use them directly.
"""

import logging
import re
from typing import Optional

from ocr_template_builder.config.settings import UNCERTAIN_CONFIDENCE
from ocr_template_builder.fields.validation import build_rules, constraint_rules
from ocr_template_builder.models.element import ElementKind, RecognizedElement
from ocr_template_builder.models.field import (
    FieldOption,
    FieldType,
    GeneratedField,
    ValidationRule,
)

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Unknown Field"
TEXTAREA_MIN_CHARS = 50

PHI_KEYWORDS = (
    "name", "dob", "birth", "ssn", "social", "address",
    "phone", "email", "medical", "diagnosis", "medication",
)

_KIND_OVERRIDES = {
    ElementKind.CHECKBOX: FieldType.CHECKBOX,
    ElementKind.RADIO: FieldType.RADIO,
    ElementKind.SELECT: FieldType.SELECT,
}

_CAMEL = re.compile(r"(?<=[a-z])(?=[A-Z])")
_NON_IDENT = re.compile(r"[^a-z0-9]+")


def infer_field_type(text: str, kind: Optional[ElementKind] = None) -> FieldType:
    """Keyword-driven type inference; an explicit widget kind wins."""
    if kind in _KIND_OVERRIDES:
        return _KIND_OVERRIDES[kind]
    lowered = (text or "").lower()
    if "email" in lowered:
        return FieldType.EMAIL
    if "phone" in lowered or "tel" in lowered:
        return FieldType.PHONE
    if "date" in lowered:
        return FieldType.DATE
    if "time" in lowered:
        return FieldType.TIME
    if "number" in lowered or "#" in lowered:
        return FieldType.NUMBER
    if "yes" in lowered or "no" in lowered:
        return FieldType.YES_NO
    if len(lowered) > TEXTAREA_MIN_CHARS:
        return FieldType.TEXTAREA
    return FieldType.TEXT


def format_label(text: str) -> str:
    """'date_of_birth' / 'dateOfBirth' -> 'Date Of Birth'.

    Trailing colons and required markers are dropped; each word is
    title-cased, so "FIRST NAME" becomes "First Name".
    """
    spaced = _CAMEL.sub(" ", (text or "").replace("_", " "))
    words = spaced.strip().rstrip(":* ").split()
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def sanitize_name(text: str) -> str:
    return _NON_IDENT.sub("_", (text or "").lower()).strip("_")


def infer_required(text: str) -> bool:
    text = text or ""
    return "*" in text or "required" in text.lower()


def is_potential_phi(text: str) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in PHI_KEYWORDS)


def placeholder_for(field_type: FieldType, label: str) -> str:
    lowered = label.lower()
    return {
        FieldType.EMAIL: "example@email.com",
        FieldType.PHONE: "(555) 123-4567",
        FieldType.DATE: "MM/DD/YYYY",
        FieldType.TIME: "HH:MM",
        FieldType.NUMBER: "Enter number",
        FieldType.TEXTAREA: f"Enter {lowered} details...",
    }.get(field_type, f"Enter {lowered}")


def _fallback_name(page_number: int, index: int) -> str:
    return f"field_{page_number}_{index}"


def placeholder_field(page_index: int, index: int) -> GeneratedField:
    """Well-formed stand-in for an element with nothing to synthesize from"""
    page_number = page_index + 1
    return GeneratedField(
        id=f"field_{index + 1}",
        name=_fallback_name(page_number, index),
        label=UNKNOWN_LABEL,
        type=FieldType.TEXT,
        order=index,
        placeholder=placeholder_for(FieldType.TEXT, UNKNOWN_LABEL),
        custom_attributes={
            "page_number": page_number,
            "confidence": 0.0,
            "bounding_box": None,
            "source_text": "",
            "source_kind": None,
        },
    )


def synthesize_field(
    element: Optional[RecognizedElement],
    page_index: int,
    index: int,
    field_id: Optional[str] = None,
) -> GeneratedField:
    """Build a field from one element.

    Never raises on empty input: a missing element or blank text yields
    `placeholder_field`. `index` is the running index across the document
    and determines both the default id and `order`.
    """
    if element is None or not (element.text or "").strip():
        logger.debug("Element %r has no text, using placeholder field", element and element.id)
        field = placeholder_field(page_index, index)
        return field.model_copy(update={"id": field_id}) if field_id else field

    page_number = page_index + 1
    text = element.text
    field_type = infer_field_type(text, element.kind)
    label = format_label(text) or UNKNOWN_LABEL
    required = infer_required(text)
    phi = is_potential_phi(text)
    confidence = element.confidence

    help_text = ""
    if confidence < UNCERTAIN_CONFIDENCE:
        help_text = f"Low confidence ({confidence:.0f}%) - Please verify"

    return GeneratedField(
        id=field_id or f"field_{index + 1}",
        name=sanitize_name(text) or _fallback_name(page_number, index),
        label=label,
        type=field_type,
        required=required,
        is_phi_field=phi,
        audit_required=phi,
        validation_rules=build_rules(constraint_rules(text), field_type, required),
        order=index,
        placeholder=placeholder_for(field_type, label),
        help_text=help_text,
        default_value=element.value or "",
        options=[FieldOption(label=opt, value=opt) for opt in element.options],
        custom_attributes={
            "page_number": page_number,
            "confidence": confidence,
            "bounding_box": element.bounding_box.model_dump(exclude_none=True),
            "source_text": text,
            "source_kind": element.kind.value,
        },
    )


def synthesize_pair(
    label: RecognizedElement,
    input_element: RecognizedElement,
    page_index: int,
    index: int,
) -> GeneratedField:
    """Field from a label matched with its input.

    The label drives naming and type; the input contributes its value and
    text. A low-confidence half is flagged with a `custom` rule.
    """
    field = synthesize_field(label, page_index, index)
    if field.label == UNKNOWN_LABEL:
        return field

    updates = {}
    if input_element.value:
        updates["default_value"] = input_element.value
    if input_element.text:
        updates["placeholder"] = input_element.text

    attributes = dict(field.custom_attributes)
    attributes["input_text"] = input_element.text
    attributes["input_bounding_box"] = input_element.bounding_box.model_dump(exclude_none=True)

    lowest = min(label.confidence, input_element.confidence)
    if lowest < UNCERTAIN_CONFIDENCE:
        attributes["confidence"] = lowest
        updates["validation_rules"] = field.validation_rules + [
            ValidationRule(type="custom", message=f"OCR confidence: {lowest:.0f}% - Please verify")
        ]
    updates["custom_attributes"] = attributes
    return field.model_copy(update=updates)
