"""
Tests for field synthesis heuristics and validation rule derivation.
"""

import re

import pytest

from conftest import make_element
from ocr_template_builder.fields import (
    apply_rules,
    build_rules,
    constraint_rules,
    format_label,
    infer_field_type,
    infer_required,
    is_potential_phi,
    sanitize_name,
    synthesize_field,
    synthesize_pair,
)
from ocr_template_builder.fields.validation import EMAIL_PATTERN, PHONE_PATTERN, REQUIRED_MESSAGE
from ocr_template_builder.models import ElementKind, FieldType, ValidationRule


class TestInferFieldType:
    """Keyword-driven type inference"""

    @pytest.mark.parametrize("text,expected", [
        ("Email Address:", FieldType.EMAIL),
        ("Date of Birth", FieldType.DATE),
        ("x" * 51, FieldType.TEXTAREA),
        ("x" * 50, FieldType.TEXT),
        ("Comments", FieldType.TEXT),
        ("Phone Number", FieldType.PHONE),
        ("Tel.", FieldType.PHONE),
        ("Date of Birth", FieldType.DATE),
        ("Appointment Time", FieldType.TIME),
        ("Policy #", FieldType.NUMBER),
        ("Smoker (Yes/No)", FieldType.YES_NO),
        ("Notes", FieldType.YES_NO),
        ("Smoker? Y/N (yesno)", FieldType.YES_NO),
        ("Please describe any symptoms you have experienced in detail", FieldType.TEXTAREA),
        ("", FieldType.TEXT),
    ])
    def test_keywords(self, text, expected):
        assert infer_field_type(text) == expected

    def test_widget_kind_wins_over_text(self):
        assert infer_field_type("Email me updates", ElementKind.CHECKBOX) == FieldType.CHECKBOX
        assert infer_field_type("Gender", ElementKind.RADIO) == FieldType.RADIO
        assert infer_field_type("State", ElementKind.SELECT) == FieldType.SELECT

    def test_yes_no_matches_substrings(self):
        assert infer_field_type("Known allergies") == FieldType.YES_NO
        assert infer_field_type("Nonsmoker") == FieldType.YES_NO
        assert infer_field_type("Height") == FieldType.TEXT


class TestTextHelpers:
    """Label formatting, names, required markers and PHI flags"""

    @pytest.mark.parametrize("text,expected", [
        ("date_of_birth", "Date Of Birth"),
        ("dateOfBirth", "Date Of Birth"),
        ("Patient Name:", "Patient Name"),
        ("Date of Birth *", "Date Of Birth"),
        ("DOB", "Dob"),
        ("FIRST NAME", "First Name"),
    ])
    def test_format_label(self, text, expected):
        assert format_label(text) == expected

    def test_sanitize_name(self):
        assert sanitize_name("First Name!!") == "first_name"

    def test_sanitize_name_idempotent_and_identifier_safe(self):
        for text in ("First Name!!", "  Date of Birth * ", "E-mail / Phone", "Policy #"):
            name = sanitize_name(text)
            assert sanitize_name(name) == name
            assert re.fullmatch(r"[a-z0-9_]*", name)

    def test_required_markers(self):
        assert infer_required("Name *")
        assert infer_required("Signature (Required)")
        assert not infer_required("Middle Name")

    def test_phi_detection(self):
        assert is_potential_phi("Social Security Number")
        assert not is_potential_phi("Study Phase")


class TestSynthesizeField:
    """Single-element synthesis"""

    def test_placeholder_for_missing_element(self):
        field = synthesize_field(None, page_index=1, index=3)
        assert field.label == "Unknown Field"
        assert field.id == "field_4"
        assert field.name == "field_2_3"
        assert field.order == 3
        assert field.custom_attributes["confidence"] == 0.0

    def test_placeholder_for_blank_text(self):
        field = synthesize_field(make_element("   "), page_index=0, index=0)
        assert field.label == "Unknown Field"
        assert field.type == FieldType.TEXT

    def test_traceability_attributes(self):
        element = make_element("Date of Birth *", ElementKind.LABEL, left=0.1, top=0.2,
                               width=0.3, height=0.05, confidence=97.5)
        field = synthesize_field(element, page_index=0, index=0)
        attrs = field.custom_attributes
        assert attrs["page_number"] == 1
        assert attrs["confidence"] == 97.5
        assert attrs["source_text"] == "Date of Birth *"
        assert attrs["source_kind"] == "label"
        assert attrs["bounding_box"]["left"] == 0.1
        assert field.type == FieldType.DATE
        assert field.required
        assert field.is_phi_field and field.audit_required
        assert field.validation_rules[0].type == "required"
        assert field.help_text == ""

    def test_low_confidence_help_text(self):
        field = synthesize_field(make_element("Comments", confidence=62.4), page_index=0, index=0)
        assert field.help_text == "Low confidence (62%) - Please verify"

    def test_options_carried_over(self):
        element = make_element("State", ElementKind.SELECT, options=["CA", "NY"])
        field = synthesize_field(element, page_index=0, index=0)
        assert field.type == FieldType.SELECT
        assert [(o.label, o.value) for o in field.options] == [("CA", "CA"), ("NY", "NY")]


class TestSynthesizePair:
    """Label + input synthesis"""

    def test_input_supplies_value_and_placeholder(self):
        label = make_element("Email:", ElementKind.LABEL, confidence=95)
        entry = make_element("jane@example.com", ElementKind.INPUT, left=100, confidence=93,
                             value="jane@example.com")
        field = synthesize_pair(label, entry, page_index=0, index=0)
        assert field.label == "Email"
        assert field.type == FieldType.EMAIL
        assert field.default_value == "jane@example.com"
        assert field.placeholder == "jane@example.com"
        assert field.custom_attributes["input_text"] == "jane@example.com"
        assert not any(r.type == "custom" for r in field.validation_rules)

    def test_low_confidence_half_adds_custom_rule(self):
        label = make_element("Medication", ElementKind.LABEL, confidence=96)
        entry = make_element("Aspirin", ElementKind.INPUT, left=100, confidence=71)
        field = synthesize_pair(label, entry, page_index=0, index=0)
        custom = [r for r in field.validation_rules if r.type == "custom"]
        assert len(custom) == 1
        assert custom[0].message == "OCR confidence: 71% - Please verify"
        assert field.custom_attributes["confidence"] == 71


class TestBuildRules:
    """Rule derivation is deterministic and idempotent"""

    def test_required_email(self):
        rules = build_rules([], FieldType.EMAIL, required=True)
        assert [r.type for r in rules] == ["required", "pattern"]
        assert rules[0].message == REQUIRED_MESSAGE
        assert rules[1].value == EMAIL_PATTERN

    def test_idempotent(self):
        once = build_rules([], FieldType.EMAIL, required=True)
        twice = build_rules(once, FieldType.EMAIL, required=True)
        assert [r.model_dump() for r in twice] == [r.model_dump() for r in once]

    def test_dropping_required(self):
        rules = build_rules(build_rules([], FieldType.PHONE, True), FieldType.PHONE, False)
        assert [r.type for r in rules] == ["pattern"]
        assert rules[0].value == PHONE_PATTERN

    def test_custom_rules_keep_their_place(self):
        custom = ValidationRule(type="custom", message="check me")
        rules = build_rules([custom], FieldType.TEXT, required=True)
        assert [r.type for r in rules] == ["required", "custom"]

    def test_apply_rules_returns_copy(self):
        field = synthesize_field(make_element("Phone"), page_index=0, index=0)
        updated = apply_rules(field.model_copy(update={"required": True}))
        assert [r.type for r in updated.validation_rules] == ["required", "pattern"]
        assert [r.type for r in field.validation_rules] == ["pattern"]

    @pytest.mark.parametrize("number,valid", [
        ("555-123-4567", True),
        ("(555) 123-4567", True),
        ("+1 555.123.4567", True),
        ("123-4567", True),
        ("12-34", False),
    ])
    def test_phone_pattern(self, number, valid):
        assert bool(re.match(PHONE_PATTERN, number)) is valid


class TestConstraintRules:
    """Length and range limits written in the label"""

    def test_length_limits(self):
        rules = constraint_rules("Nickname (min 2, maximum: 12)")
        assert [(r.type, r.value) for r in rules] == [("minLength", 2), ("maxLength", 12)]
        assert rules[1].message == "Maximum length is 12"

    def test_range(self):
        rules = constraint_rules("Pain level 1 - 10")
        assert [(r.type, r.value) for r in rules] == [("min", 1), ("max", 10)]
        assert rules[0].message == "Minimum value is 1"

    def test_plain_label_has_none(self):
        assert constraint_rules("Patient Name") == []

    def test_synthesized_after_required_and_kept_on_rebuild(self):
        field = synthesize_field(make_element("Comments * (max 200)"), page_index=0, index=0)
        assert [r.type for r in field.validation_rules] == ["required", "maxLength"]
        rebuilt = apply_rules(field.model_copy(update={"required": False}))
        assert [(r.type, r.value) for r in rebuilt.validation_rules] == [("maxLength", 200)]
