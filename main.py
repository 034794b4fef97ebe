import asyncio
import json
import logging
import os

import click

from ocr_template_builder.config.settings import MB, ROW_TOLERANCE, load_profile
from ocr_template_builder.errors import RecognitionError, UploadRejectedError
from ocr_template_builder.pipeline.builder import build_from_document
from ocr_template_builder.pipeline.ingest import normalize
from ocr_template_builder.pipeline.pages import MultiPageCoordinator
from ocr_template_builder.recognition.client import RecognitionClient
from ocr_template_builder.renderer.overlay import OverlayRenderer
from ocr_template_builder.models import Point, ViewMode
from ocr_template_builder.uploads import image_size, validate_upload


def _load_payload(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _ensure_parent(path: str) -> None:
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)


def _review_renderer(width: int, height: int, margin: float) -> OverlayRenderer:
    renderer = OverlayRenderer(width, height, margin=margin)
    renderer.transition(ViewMode.PROCESSING)
    renderer.transition(ViewMode.REVIEW)
    return renderer


@click.group(help="Turn OCR recognition output for scanned forms into form template drafts.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log pipeline details to stderr")
def cli(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command(help="Build a template draft from a recognition result JSON file.")
@click.argument("result_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "out_path", type=str, default="outputs/template.json", show_default=True, help="Draft JSON output path")
@click.option("--name", type=str, default="", help="Template name (defaults to the result file name)")
@click.option("--image", "images", type=click.Path(exists=True, dir_okay=False), multiple=True, help="Page image, once per page in order; sets the pixel size normalized boxes are promoted to")
@click.option("--tolerance", type=float, default=ROW_TOLERANCE, show_default=True, help="Row clustering tolerance in pixels")
@click.option("--max-distance", "max_distance", type=float, default=None, help="Ignore label/input pairs farther apart than this many pixels")
@click.option("--no-sections", "no_sections", is_flag=True, default=False, help="Put every field in a single Main Section")
@click.option("--overlay-dir", "overlay_dir", type=str, default=None, help="Also write a review overlay PNG per page (needs --image)")
def build(result_path: str, out_path: str, name: str, images: tuple, tolerance: float, max_distance: float | None,
          no_sections: bool, overlay_dir: str | None):
    document = normalize(_load_payload(result_path))
    sizes = {i + 1: size for i, size in enumerate(image_size(p) for p in images) if size is not None}
    result = build_from_document(
        document,
        name=name or os.path.splitext(os.path.basename(result_path))[0],
        tolerance=tolerance,
        image_sizes=sizes,
        max_distance=max_distance,
        detect=not no_sections,
    )
    _ensure_parent(out_path)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(result.draft.model_dump(mode="json"), f, indent=2)
    click.echo(f"✅ Generated {out_path}: {len(result.draft.fields)} field(s) in {len(result.draft.sections)} section(s) from {document.total_pages} page(s)")

    phi = sum(1 for f in result.fields if f.is_phi_field)
    if phi:
        click.echo(f"🔒 {phi} field(s) flagged as potential PHI")
    uncertain = sum(1 for f in result.fields if f.help_text)
    if uncertain:
        click.echo(f"⚠️  {uncertain} field(s) below the confidence threshold - please verify")

    if overlay_dir:
        if not images:
            click.echo("⚠️  --overlay-dir needs --image; no overlays written")
            return
        os.makedirs(overlay_dir, exist_ok=True)
        profile = load_profile()
        renderer = _review_renderer(1024, 768, profile.fit_margin)
        coordinator = MultiPageCoordinator(document, list(images), on_page_change=renderer.show_page)
        while True:
            page = coordinator.current_page_index + 1
            path = os.path.join(overlay_dir, f"page_{page}.png")
            with open(path, "wb") as f:
                f.write(renderer.to_png())
            click.echo(f"🖼️  Overlay for page {page}: {path}")
            if not coordinator.next_page():
                break


@cli.command(help="Render the review overlay for one page to PNG.")
@click.argument("result_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("image_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--page", type=click.IntRange(min=1), default=1, show_default=True, help="1-based page of the result to draw")
@click.option("--out", "out_path", type=str, default="outputs/overlay.png", show_default=True, help="PNG output path")
@click.option("--width", type=click.IntRange(min=1), default=1024, show_default=True, help="Viewport width in px")
@click.option("--height", type=click.IntRange(min=1), default=768, show_default=True, help="Viewport height in px")
@click.option("--zoom", type=float, default=1.0, show_default=True, help="Zoom level (clamped 0.25-3.0)")
@click.option("--pan-x", "pan_x", type=float, default=0.0, show_default=True, help="Horizontal pan in viewport px")
@click.option("--pan-y", "pan_y", type=float, default=0.0, show_default=True, help="Vertical pan in viewport px")
@click.option("--hide-boxes", "hide_boxes", is_flag=True, default=False, help="Do not draw bounding boxes")
@click.option("--hide-confidence", "hide_confidence", is_flag=True, default=False, help="Do not append confidence % to labels")
def render(result_path: str, image_path: str, page: int, out_path: str, width: int, height: int, zoom: float,
           pan_x: float, pan_y: float, hide_boxes: bool, hide_confidence: bool):
    document = normalize(_load_payload(result_path))
    if page > document.total_pages:
        click.echo(f"❌ Result has {document.total_pages} page(s), no page {page}")
        raise SystemExit(1)
    profile = load_profile()
    renderer = _review_renderer(width, height, profile.fit_margin)
    renderer.view.zoom_level = zoom
    renderer.view.pan_offset = Point(x=pan_x, y=pan_y)
    renderer.view.show_bounding_boxes = not hide_boxes
    renderer.view.show_confidence_scores = not hide_confidence
    renderer.show_page(page - 1, image_path, document.elements(page - 1))
    _ensure_parent(out_path)
    with open(out_path, "wb") as f:
        f.write(renderer.to_png())
    if renderer.error_message:
        click.echo(f"⚠️  {renderer.error_message}; wrote error panel to {out_path}")
        raise SystemExit(1)
    click.echo(f"✅ Rendered page {page} ({len(document.elements(page - 1))} element(s)) to {out_path}")


@cli.command("validate-file", help="Check a document against upload type and size limits.")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--max-mb", "max_mb", type=float, default=None, help="Size limit in MB (defaults to OCR_MAX_FILE_MB or 5)")
def validate_file(path: str, max_mb: float | None):
    limit = int(max_mb * MB) if max_mb is not None else load_profile().max_file_size_bytes
    size = os.path.getsize(path)
    try:
        validate_upload(os.path.basename(path), size, limit)
    except UploadRejectedError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)
    click.echo(f"✅ {path} accepted ({size / MB:.2f}MB)")


@cli.command(help="Send a document to the recognition provider and save the raw result.")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "out_path", type=str, default="outputs/recognition.json", show_default=True, help="Result JSON output path")
def recognize(path: str, out_path: str):
    profile = load_profile()
    with open(path, "rb") as f:
        content = f.read()
    try:
        validate_upload(os.path.basename(path), len(content), profile.max_file_size_bytes)
    except UploadRejectedError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)
    click.echo(f"🔎 Sending {os.path.basename(path)} to {profile.provider_url}...")
    client = RecognitionClient(profile)
    try:
        result = asyncio.run(client.recognize(content, os.path.basename(path)))
    except RecognitionError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)
    _ensure_parent(out_path)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(result.model_dump(mode="json", by_alias=True), f, indent=2)
    click.echo(f"✅ Saved recognition result to {out_path}")


if __name__ == "__main__":
    cli()
