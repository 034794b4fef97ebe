"""Services for the OCR Template Builder"""

from web.backend.services.session_store import session_store, SessionStore, TemplateSession

__all__ = [
    "session_store",
    "SessionStore",
    "TemplateSession"
]
