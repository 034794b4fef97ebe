"""
Request/response models for the template builder API
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from ocr_template_builder.models import (
    BoundingBox,
    ElementKind,
    FieldType,
    GeneratedField,
    RecognizedElement,
    TemplateDraft,
    ViewMode,
    ViewState,
)


class SessionState(BaseModel):
    """Snapshot of one builder session"""
    id: str = Field(..., description="Session ID")
    mode: ViewMode = Field(..., description="upload | processing | review | fields")
    view: ViewState
    filename: Optional[str] = None
    total_pages: int = 0
    progress: int = Field(default=0, description="Simulated recognition progress 0-100")
    field_count: int = 0
    image_ready: bool = False
    error: Optional[str] = Field(default=None, description="Last provider or render error")
    created_at: datetime

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "sess_3f2a9c1b7d4e",
                "mode": "review",
                "view": {
                    "zoom_level": 1.25,
                    "pan_offset": {"x": 0, "y": 0},
                    "current_page_index": 0,
                    "show_bounding_boxes": True,
                    "show_confidence_scores": True,
                },
                "filename": "intake_form.pdf",
                "total_pages": 2,
                "progress": 0,
                "field_count": 14,
                "image_ready": True,
                "error": None,
                "created_at": "2024-01-01T00:00:00",
            }
        }
    }


class SessionResponse(BaseModel):
    success: bool
    message: str = ""
    session: SessionState


class ViewUpdate(BaseModel):
    """View controls; every attribute is optional and applied in order"""
    zoom_level: Optional[float] = Field(None, description="Absolute zoom, clamped 0.25-3.0")
    zoom_step: Optional[int] = Field(None, description="+1 zoom in, -1 zoom out")
    pan_dx: float = 0.0
    pan_dy: float = 0.0
    show_bounding_boxes: Optional[bool] = None
    show_confidence_scores: Optional[bool] = None
    reset: bool = False


class PageNavigation(BaseModel):
    action: str = Field(..., description="next | previous | goto")
    index: Optional[int] = Field(None, description="0-based page for goto")


class ModeChange(BaseModel):
    mode: ViewMode


class PointerEvent(BaseModel):
    """One pointer event in viewport pixels"""
    phase: str = Field(..., description="down | move | up | click")
    x: float
    y: float
    capture: Optional[bool] = Field(None, description="Enable/disable region capture before handling")


class PointerResponse(BaseModel):
    success: bool
    captured: Optional[BoundingBox] = None
    element: Optional[RecognizedElement] = None


class FieldUpdate(BaseModel):
    """Edit form payload"""
    label: Optional[str] = None
    name: Optional[str] = None
    type: Optional[FieldType] = None
    required: Optional[bool] = None
    is_phi_field: Optional[bool] = None
    audit_required: Optional[bool] = None
    placeholder: Optional[str] = None
    help_text: Optional[str] = None


class FieldMove(BaseModel):
    from_index: int
    to_index: int


class ManualFieldRequest(BaseModel):
    """Promote a captured viewport box to a field"""
    box: Optional[BoundingBox] = Field(None, description="Viewport box; defaults to the last capture")
    text: str = ""
    kind: ElementKind = ElementKind.INPUT
    type: Optional[FieldType] = None


class ElementKindUpdate(BaseModel):
    kind: ElementKind
    page_index: Optional[int] = Field(None, description="Defaults to the current page")


class FieldListResponse(BaseModel):
    success: bool
    fields: List[GeneratedField]
    total: int


class AssembleRequest(BaseModel):
    name: str = ""


class DraftResponse(BaseModel):
    success: bool
    draft: TemplateDraft
