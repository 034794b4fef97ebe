"""API models for the OCR Template Builder"""

from web.backend.models.session import (
    SessionState,
    SessionResponse,
    ViewUpdate,
    PageNavigation,
    PointerEvent,
    FieldUpdate,
    FieldMove,
    ManualFieldRequest,
    DraftResponse,
)

__all__ = [
    "SessionState",
    "SessionResponse",
    "ViewUpdate",
    "PageNavigation",
    "PointerEvent",
    "FieldUpdate",
    "FieldMove",
    "ManualFieldRequest",
    "DraftResponse",
]
