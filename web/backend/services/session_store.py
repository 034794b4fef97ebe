"""
Builder sessions

One TemplateSession per open builder dialog: the current file selection,
the recognition result, the overlay renderer and the editable field list.
Sessions live in memory; closing one releases its preview files.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from ocr_template_builder.config.settings import Profile
from ocr_template_builder.errors import ImageNotReadyError, RecognitionError, ViewModeError
from ocr_template_builder.fields import editor
from ocr_template_builder.models import (
    BoundingBox,
    ElementKind,
    FieldType,
    GeneratedField,
    TemplateDraft,
    ViewMode,
)
from ocr_template_builder.pipeline.builder import build_from_document, change_element_kind
from ocr_template_builder.pipeline.ingest import RecognizedDocument, normalize
from ocr_template_builder.pipeline.pages import MultiPageCoordinator
from ocr_template_builder.recognition.client import ProgressTracker, RecognitionClient
from ocr_template_builder.renderer.overlay import OverlayRenderer
from ocr_template_builder.template.assembler import assemble
from ocr_template_builder.uploads import PreviewSession
from web.backend.config import DESKTOP, ViewportProfile
from web.backend.models.session import SessionState

logger = logging.getLogger(__name__)


class TemplateSession:
    """State for one document being turned into a template"""

    def __init__(self, session_id: str, profile: Profile, viewport: ViewportProfile = DESKTOP):
        self.id = session_id
        self.profile = profile
        self.created_at = datetime.now()
        self.preview_root = Path(profile.storage_dir) / session_id
        self.preview = PreviewSession(self.preview_root, max_bytes=profile.max_file_size_bytes)
        self.renderer = OverlayRenderer(viewport.width, viewport.height, margin=profile.fit_margin)
        self.coordinator = MultiPageCoordinator(on_page_change=self.renderer.show_page)
        self.progress = ProgressTracker()
        self.document: Optional[RecognizedDocument] = None
        self.fields: List[GeneratedField] = []
        self.section_map: Dict[str, List[str]] = {}
        self.last_error: Optional[str] = None

    # upload + recognition

    def upload(self, filename: str, content: bytes) -> List[Path]:
        """Select a file; a rejected file leaves the session as it was"""
        if self.renderer.mode == ViewMode.PROCESSING:
            raise ViewModeError("Recognition in progress")
        pages = self.preview.select(filename, content)
        self.renderer.reset()
        self.document = None
        self.fields = []
        self.section_map = {}
        self.last_error = None
        self.renderer.load_image(pages[0] if pages else None)
        logger.info("Session %s: selected %s (%d page(s))", self.id, filename, len(pages))
        return pages

    async def recognize(self, client: RecognitionClient) -> None:
        if self.preview.content is None:
            raise ViewModeError("No file selected")
        self.renderer.transition(ViewMode.PROCESSING)
        try:
            result = await client.recognize(self.preview.content, self.preview.filename,
                                            progress=self.progress)
        except RecognitionError as e:
            self.last_error = str(e)
            self.renderer.transition(ViewMode.UPLOAD)
            logger.warning("Session %s: recognition failed: %s", self.id, e)
            raise
        self.apply_result(result)

    def apply_result(self, result) -> None:
        """Ingest a recognition result and enter review"""
        self.document = normalize(result)
        self._rebuild()
        self.last_error = None
        self.renderer.transition(ViewMode.REVIEW)
        self.coordinator.load(self.document, [str(p) for p in self.preview.pages])

    def _rebuild(self) -> None:
        build = build_from_document(
            self.document,
            tolerance=self.profile.row_tolerance,
            image_sizes=self.preview.image_sizes(),
        )
        self.fields = build.fields
        self.section_map = build.section_map

    def _require_document(self) -> RecognizedDocument:
        if self.document is None:
            raise ViewModeError("No recognition result yet")
        return self.document

    # element + field editing

    def set_element_kind(self, element_id: str, kind: ElementKind, page_index: Optional[int] = None) -> None:
        """Re-tag an element and re-synthesize every field"""
        document = self._require_document()
        page_index = self.coordinator.current_page_index if page_index is None else page_index
        if not 0 <= page_index < document.total_pages:
            raise KeyError(f"No page {page_index + 1}")
        self.document = change_element_kind(document, page_index, element_id, kind)
        self._rebuild()
        self.coordinator.update_page(page_index, self.document.elements(page_index))

    def edit_field(self, field_id: str, **changes) -> GeneratedField:
        self._require_document()
        self.fields = editor.edit_field(self.fields, field_id, **changes)
        return next(f for f in self.fields if f.id == field_id)

    def remove_field(self, field_id: str) -> None:
        self._require_document()
        self.fields = editor.remove_field(self.fields, field_id)

    def move_field(self, from_index: int, to_index: int) -> None:
        self._require_document()
        self.fields = editor.move_field(self.fields, from_index, to_index)

    def add_manual_field(self, box: Optional[BoundingBox] = None, text: str = "",
                         kind: ElementKind = ElementKind.INPUT,
                         field_type: Optional[FieldType] = None) -> GeneratedField:
        document = self._require_document()
        transform = self.renderer.current_transform()
        if transform is None:
            raise ImageNotReadyError("Page image is not loaded")
        if box is None:
            if not self.renderer.captured_boxes:
                raise ViewModeError("No captured region to promote")
            box = self.renderer.captured_boxes.pop()
        page_index = self.coordinator.current_page_index
        self.fields, element = editor.add_manual_field(
            self.fields, box, transform, page_index, text=text, kind=kind, field_type=field_type
        )
        self.document = document.replace_page(page_index, document.elements(page_index) + (element,))
        self.coordinator.update_page(page_index, self.document.elements(page_index))
        return self.fields[-1]

    def visible_fields(self) -> List[GeneratedField]:
        return [f for f in self.fields if self.coordinator.is_field_on_current_page(f)]

    def assemble(self, name: str = "") -> TemplateDraft:
        self._require_document()
        return assemble(self.fields, self.section_map, name=name or Path(self.preview.filename or "").stem)

    # lifecycle

    def state(self) -> SessionState:
        return SessionState(
            id=self.id,
            mode=self.renderer.mode,
            view=self.renderer.view,
            filename=self.preview.filename,
            total_pages=self.coordinator.total_pages,
            progress=self.progress.value,
            field_count=len(self.fields),
            image_ready=self.renderer.image_ready,
            error=self.last_error or self.renderer.error_message,
            created_at=self.created_at,
        )

    def close(self) -> None:
        self.preview.close()
        self.renderer.reset()
        logger.info("Session %s closed", self.id)


class SessionStore:
    """In-memory registry of open sessions"""

    def __init__(self):
        self._sessions: Dict[str, TemplateSession] = {}

    def create(self, profile: Profile, viewport: ViewportProfile = DESKTOP) -> TemplateSession:
        session_id = f"sess_{uuid.uuid4().hex[:12]}"
        session = TemplateSession(session_id, profile, viewport)
        self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> TemplateSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise KeyError(f"Session not found: {session_id}") from None

    def close(self, session_id: str) -> None:
        self.get(session_id).close()
        del self._sessions[session_id]

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def __len__(self) -> int:
        return len(self._sessions)


# Global instance
session_store = SessionStore()
