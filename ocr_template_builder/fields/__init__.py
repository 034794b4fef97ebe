"""Field synthesis, validation rules and editing"""

from ocr_template_builder.fields.synthesizer import (
    format_label,
    infer_field_type,
    infer_required,
    is_potential_phi,
    sanitize_name,
    synthesize_field,
    synthesize_pair,
)
from ocr_template_builder.fields.validation import apply_rules, build_rules, constraint_rules

__all__ = [
    "format_label",
    "infer_field_type",
    "infer_required",
    "is_potential_phi",
    "sanitize_name",
    "synthesize_field",
    "synthesize_pair",
    "apply_rules",
    "build_rules",
    "constraint_rules",
]
