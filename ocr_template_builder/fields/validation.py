"""
Validation rule derivation for generated fields.

Rules are rebuilt whenever a field's type or required flag changes, so this
module only ever returns fresh lists.
"""

import re
from typing import Iterable, List, Optional

from ocr_template_builder.models.field import FieldType, GeneratedField, ValidationRule

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
# optional country code, optional area code, then 7 trailing digits
PHONE_PATTERN = r"^(\+\d{1,3}[-\s.]?)?(\(?\d{3}\)?[-\s.]?)?\d{3}[-\s.]?\d{4}$"

REQUIRED_MESSAGE = "This field is required"

_TYPE_PATTERNS = {
    FieldType.EMAIL: (EMAIL_PATTERN, "Please enter a valid email address"),
    FieldType.PHONE: (PHONE_PATTERN, "Please enter a valid phone number"),
}

_MIN_LENGTH = re.compile(r"min[imum]*\s*[:=]?\s*(\d+)")
_MAX_LENGTH = re.compile(r"max[imum]*\s*[:=]?\s*(\d+)")
_RANGE = re.compile(r"(\d+)\s*-\s*(\d+)")


def constraint_rules(text: str) -> List[ValidationRule]:
    """Length and range rules spelled out in a label, e.g. "max 50" or "1-10"."""
    lowered = (text or "").lower()
    rules: List[ValidationRule] = []
    match = _MIN_LENGTH.search(lowered)
    if match:
        n = int(match.group(1))
        rules.append(ValidationRule(type="minLength", value=n, message=f"Minimum length is {n}"))
    match = _MAX_LENGTH.search(lowered)
    if match:
        n = int(match.group(1))
        rules.append(ValidationRule(type="maxLength", value=n, message=f"Maximum length is {n}"))
    match = _RANGE.search(lowered)
    if match:
        low, high = int(match.group(1)), int(match.group(2))
        rules.append(ValidationRule(type="min", value=low, message=f"Minimum value is {low}"))
        rules.append(ValidationRule(type="max", value=high, message=f"Maximum value is {high}"))
    return rules


def build_rules(
    existing: Optional[Iterable[ValidationRule]],
    field_type: FieldType,
    required: bool,
) -> List[ValidationRule]:
    """Derive the ordered rule list for a field.

    Existing `required` rules are dropped and, when `required`, a fresh one
    is put first. Email and phone fields get a pattern rule unless one is
    already present. Other rules keep their relative order.
    """
    rules = [r.model_copy() for r in (existing or []) if r.type != "required"]
    if required:
        rules.insert(0, ValidationRule(type="required", value=True, message=REQUIRED_MESSAGE))

    pattern = _TYPE_PATTERNS.get(FieldType(field_type))
    if pattern and not any(r.type == "pattern" for r in rules):
        value, message = pattern
        rules.append(ValidationRule(type="pattern", value=value, message=message))
    return rules


def apply_rules(field: GeneratedField) -> GeneratedField:
    """Return a copy of `field` with its rules re-derived"""
    rules = build_rules(field.validation_rules, field.type, field.required)
    return field.model_copy(update={"validation_rules": rules})
