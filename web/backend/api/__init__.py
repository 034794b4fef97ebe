"""API routes for the OCR Template Builder"""

from web.backend.api import templates

__all__ = ["templates"]
