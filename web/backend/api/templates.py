"""
Template builder API endpoints

Upload a scanned form, run recognition, review the overlay, edit the
synthesized fields and assemble a template draft.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from ocr_template_builder.config.settings import Profile
from ocr_template_builder.errors import UploadRejectedError
from ocr_template_builder.models import ViewMode
from ocr_template_builder.recognition.client import RecognitionClient
from ocr_template_builder.uploads import validate_upload
from web.backend.config import VIEWPORTS, get_profile
from web.backend.models.session import (
    AssembleRequest,
    DraftResponse,
    ElementKindUpdate,
    FieldListResponse,
    FieldMove,
    FieldUpdate,
    ManualFieldRequest,
    ModeChange,
    PageNavigation,
    PointerEvent,
    PointerResponse,
    SessionResponse,
    ViewUpdate,
)
from web.backend.services.session_store import TemplateSession, session_store

router = APIRouter()

_client: Optional[RecognitionClient] = None


def get_recognition_client() -> RecognitionClient:
    """Shared provider client (overridden in tests)"""
    global _client
    if _client is None:
        _client = RecognitionClient(get_profile())
    return _client


def _session(session_id: str) -> TemplateSession:
    try:
        return session_store.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Session not found")


def _ok(session: TemplateSession, message: str = "") -> SessionResponse:
    return SessionResponse(success=True, message=message, session=session.state())


@router.post("/", response_model=SessionResponse)
async def create_session(
    viewport: str = Query("desktop", description=f"One of: {', '.join(VIEWPORTS)}"),
    profile: Profile = Depends(get_profile),
):
    """Open a new builder session."""
    if viewport not in VIEWPORTS:
        raise HTTPException(status_code=400, detail=f"Unknown viewport: {viewport}")
    session = session_store.create(profile, VIEWPORTS[viewport])
    return _ok(session, "Session created")


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    return _ok(_session(session_id))


@router.delete("/{session_id}")
async def close_session(session_id: str):
    """Close a session and release its preview files."""
    _session(session_id)
    session_store.close(session_id)
    return {"success": True, "message": "Session closed"}


@router.post("/{session_id}/upload", response_model=SessionResponse)
async def upload_document(session_id: str, file: UploadFile = File(...)):
    """
    Select the document to recognize.

    Unsupported types and oversized files are rejected with 400 and the
    current selection is kept.
    """
    session = _session(session_id)
    filename = file.filename or ""
    limit = session.profile.max_file_size_bytes
    try:
        if file.size is not None:
            validate_upload(filename, file.size, limit)
        # never buffer more than one byte past the limit
        content = await file.read(limit + 1)
        pages = session.upload(filename, content)
    except UploadRejectedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _ok(session, f"Loaded {len(pages)} page(s)")


@router.post("/{session_id}/recognize", response_model=SessionResponse)
async def recognize_document(session_id: str, client: RecognitionClient = Depends(get_recognition_client)):
    """Run recognition; provider failures return 502 and the session goes back to upload."""
    session = _session(session_id)
    await session.recognize(client)
    return _ok(session, f"Generated {len(session.fields)} field(s)")


@router.get("/{session_id}/progress")
async def get_progress(session_id: str):
    session = _session(session_id)
    return {"progress": session.progress.value, "mode": session.renderer.mode}


@router.post("/{session_id}/mode", response_model=SessionResponse)
async def change_mode(session_id: str, change: ModeChange):
    """Switch between review and field list."""
    session = _session(session_id)
    if change.mode not in (ViewMode.REVIEW, ViewMode.FIELDS):
        raise HTTPException(status_code=400, detail="Only review and fields can be selected")
    if change.mode != session.renderer.mode:
        session.renderer.transition(change.mode)
    return _ok(session)


@router.post("/{session_id}/view", response_model=SessionResponse)
async def update_view(session_id: str, update: ViewUpdate):
    """Zoom, pan and display toggles."""
    session = _session(session_id)
    renderer = session.renderer
    if update.reset:
        renderer.reset_view()
    if update.zoom_level is not None:
        renderer.set_zoom(update.zoom_level)
    if update.zoom_step:
        if update.zoom_step > 0:
            renderer.zoom_in()
        else:
            renderer.zoom_out()
    if update.pan_dx or update.pan_dy:
        renderer.pan_by(update.pan_dx, update.pan_dy)
    if update.show_bounding_boxes is not None and update.show_bounding_boxes != renderer.view.show_bounding_boxes:
        renderer.toggle_bounding_boxes()
    if (update.show_confidence_scores is not None
            and update.show_confidence_scores != renderer.view.show_confidence_scores):
        renderer.toggle_confidence_scores()
    return _ok(session)


@router.post("/{session_id}/pages", response_model=SessionResponse)
async def navigate_pages(session_id: str, nav: PageNavigation):
    session = _session(session_id)
    coordinator = session.coordinator
    if nav.action == "next":
        coordinator.next_page()
    elif nav.action == "previous":
        coordinator.previous_page()
    elif nav.action == "goto" and nav.index is not None:
        coordinator.go_to(nav.index)
    else:
        raise HTTPException(status_code=400, detail=f"Invalid page action: {nav.action}")
    return _ok(session)


@router.get("/{session_id}/overlay.png")
async def get_overlay(session_id: str):
    """Current viewport as PNG."""
    session = _session(session_id)
    return Response(content=session.renderer.to_png(), media_type="image/png")


@router.post("/{session_id}/pointer", response_model=PointerResponse)
async def pointer_event(session_id: str, event: PointerEvent):
    """Pointer input in viewport pixels: pan drag, region capture or element click."""
    session = _session(session_id)
    renderer = session.renderer
    if event.capture is not None:
        renderer.capture_enabled = event.capture
    if event.phase == "down":
        return PointerResponse(success=renderer.pointer_down(event.x, event.y))
    if event.phase == "move":
        renderer.pointer_move(event.x, event.y)
        return PointerResponse(success=True)
    if event.phase == "up":
        return PointerResponse(success=True, captured=renderer.pointer_up(event.x, event.y))
    if event.phase == "click":
        return PointerResponse(success=True, element=renderer.click(event.x, event.y))
    raise HTTPException(status_code=400, detail=f"Invalid pointer phase: {event.phase}")


@router.get("/{session_id}/fields", response_model=FieldListResponse)
async def list_fields(session_id: str, current_page_only: bool = False):
    session = _session(session_id)
    fields = session.visible_fields() if current_page_only else session.fields
    return FieldListResponse(success=True, fields=fields, total=len(fields))


@router.put("/{session_id}/fields/{field_id}", response_model=FieldListResponse)
async def update_field(session_id: str, field_id: str, update: FieldUpdate):
    """Save the field edit form; validation rules are re-derived."""
    session = _session(session_id)
    try:
        session.edit_field(field_id, **update.model_dump(exclude_none=True))
    except KeyError:
        raise HTTPException(status_code=404, detail="Field not found")
    return FieldListResponse(success=True, fields=session.fields, total=len(session.fields))


@router.delete("/{session_id}/fields/{field_id}", response_model=FieldListResponse)
async def delete_field(session_id: str, field_id: str):
    session = _session(session_id)
    try:
        session.remove_field(field_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Field not found")
    return FieldListResponse(success=True, fields=session.fields, total=len(session.fields))


@router.post("/{session_id}/fields/move", response_model=FieldListResponse)
async def move_field(session_id: str, move: FieldMove):
    """Drag-drop reorder."""
    session = _session(session_id)
    try:
        session.move_field(move.from_index, move.to_index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return FieldListResponse(success=True, fields=session.fields, total=len(session.fields))


@router.post("/{session_id}/fields/manual", response_model=FieldListResponse)
async def add_manual_field(session_id: str, request: ManualFieldRequest):
    """Promote a captured region to a new field."""
    session = _session(session_id)
    session.add_manual_field(request.box, request.text, request.kind, request.type)
    return FieldListResponse(success=True, fields=session.fields, total=len(session.fields))


@router.put("/{session_id}/elements/{element_id}/kind", response_model=FieldListResponse)
async def set_element_kind(session_id: str, element_id: str, update: ElementKindUpdate):
    """Re-tag a recognized element; fields are re-synthesized."""
    session = _session(session_id)
    try:
        session.set_element_kind(element_id, update.kind, update.page_index)
    except KeyError:
        raise HTTPException(status_code=404, detail="Element not found")
    return FieldListResponse(success=True, fields=session.fields, total=len(session.fields))


@router.post("/{session_id}/assemble", response_model=DraftResponse)
async def assemble_template(session_id: str, request: AssembleRequest):
    """Snapshot the current fields into a template draft."""
    session = _session(session_id)
    return DraftResponse(success=True, draft=session.assemble(request.name))
