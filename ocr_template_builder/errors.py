"""Error taxonomy for the template builder.

Nothing here is fatal: every error maps to a recoverable state (upload form
unchanged, back to upload mode, or an in-viewport error panel).
"""


class TemplateBuilderError(Exception):
    """Base class for all template builder errors."""


class UploadRejectedError(TemplateBuilderError, ValueError):
    """Unsupported or oversized file; raised before any recognition call."""


class RecognitionError(TemplateBuilderError, RuntimeError):
    """Provider call failed, timed out or returned nothing usable."""


class ImageNotReadyError(TemplateBuilderError, RuntimeError):
    """A coordinate transform was requested before the page image decoded."""


class ViewModeError(TemplateBuilderError, RuntimeError):
    """Operation not allowed in the current view mode."""
