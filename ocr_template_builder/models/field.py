"""
Field and template models

GeneratedField is the unit the pipeline produces; TemplateDraft is the
snapshot handed to template persistence.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class FieldType(str, Enum):
    """Data types a generated field can take"""
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    TIME = "time"
    NUMBER = "number"
    YES_NO = "yes_no"
    TEXTAREA = "textarea"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"


class ValidationRule(BaseModel):
    """Single validation rule (required, pattern, custom, ...)"""
    type: str = Field(..., description="Rule type")
    value: Optional[Any] = Field(default=None, description="Rule argument (e.g. regex)")
    message: str = Field(default="", description="Message shown on failure")


class FieldOption(BaseModel):
    label: str
    value: str


class GeneratedField(BaseModel):
    """Structured form field synthesized from recognized elements"""
    id: str = Field(..., description="Unique field ID")
    name: str = Field(..., description="Sanitized identifier")
    label: str = Field(..., description="Display label")
    type: FieldType = Field(default=FieldType.TEXT)
    required: bool = False
    is_phi_field: bool = False
    audit_required: bool = False
    validation_rules: List[ValidationRule] = Field(default_factory=list)
    order: int = Field(default=0, description="Position within the synthesized sequence")
    placeholder: str = ""
    help_text: str = ""
    default_value: str = ""
    options: List[FieldOption] = Field(default_factory=list)
    custom_attributes: Dict[str, Any] = Field(
        default_factory=dict,
        description="Traceability back to the source element "
                    "(page_number, confidence, bounding_box, source_text, source_kind)",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "field_1",
                "name": "date_of_birth",
                "label": "Date Of Birth",
                "type": "date",
                "required": True,
                "is_phi_field": True,
                "audit_required": True,
                "validation_rules": [
                    {"type": "required", "value": True, "message": "This field is required"}
                ],
                "order": 0,
                "custom_attributes": {
                    "page_number": 1,
                    "confidence": 97.5,
                    "bounding_box": {"left": 0.1, "top": 0.2, "width": 0.3, "height": 0.05},
                    "source_text": "Date of Birth *",
                    "source_kind": "label",
                },
            }
        }
    }

    @property
    def page_number(self) -> Optional[int]:
        return self.custom_attributes.get("page_number")


class TemplateSection(BaseModel):
    """Named group of field IDs"""
    id: str
    name: str
    field_ids: List[str] = Field(default_factory=list)
    order: int = 0


class TemplateDraft(BaseModel):
    """Complete draft handed to template persistence"""
    name: str = Field(default="", description="Template name")
    fields: List[GeneratedField] = Field(default_factory=list)
    sections: List[TemplateSection] = Field(default_factory=list)
