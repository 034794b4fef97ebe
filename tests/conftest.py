from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Ensure the project root is importable regardless of how pytest is launched
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from ocr_template_builder.config.settings import Profile  # noqa: E402
from ocr_template_builder.models import BoundingBox, ElementKind, RecognizedElement  # noqa: E402


def make_element(
    text: str = "Field",
    kind: ElementKind | str = ElementKind.TEXT,
    left: float = 0.0,
    top: float = 0.0,
    width: float = 10.0,
    height: float = 10.0,
    confidence: float = 95.0,
    element_id: str = "",
    **extra,
) -> RecognizedElement:
    return RecognizedElement(
        id=element_id or f"{text}_{left}_{top}",
        text=text,
        kind=kind,
        confidence=confidence,
        bounding_box=BoundingBox(left=left, top=top, width=width, height=height),
        **extra,
    )


@pytest.fixture
def element_factory():
    return make_element


@pytest.fixture
def profile(tmp_path) -> Profile:
    return Profile(
        provider_url="http://provider.test/api/textract/analyze",
        timeout_s=2.0,
        storage_dir=tmp_path / "sessions",
    )


@pytest.fixture
def form_payload() -> dict:
    """Provider response for a 200x100 form: two label/input rows"""
    return {
        "success": True,
        "data": {
            "elements": [
                {"text": "Email Address:", "type": "label", "confidence": 95,
                 "boundingBox": {"left": 0.05, "top": 0.1, "width": 0.3, "height": 0.08}},
                {"text": "jane@example.com", "type": "input", "confidence": 92, "value": "jane@example.com",
                 "boundingBox": {"left": 0.4, "top": 0.1, "width": 0.5, "height": 0.08}},
                {"text": "Date of Birth *", "type": "label", "confidence": 75,
                 "boundingBox": {"left": 0.05, "top": 0.5, "width": 0.3, "height": 0.08}},
                {"text": "01/02/1980", "type": "input", "confidence": 88,
                 "boundingBox": {"left": 0.4, "top": 0.5, "width": 0.3, "height": 0.08}},
            ],
            "rawText": "Email Address: jane@example.com\nDate of Birth * 01/02/1980",
        },
    }


@pytest.fixture
def two_row_payload() -> dict:
    """Normalized boxes, two rows far apart, no image size available.

    Read as one row, "Email" would sit nearest the "Comments" input.
    """
    return {"elements": [
        {"text": "Email", "type": "label", "confidence": 95,
         "boundingBox": {"left": 0.05, "top": 0.1, "width": 0.2, "height": 0.04}},
        {"text": "jane@example.com", "type": "input", "confidence": 95, "value": "jane@example.com",
         "boundingBox": {"left": 0.9, "top": 0.1, "width": 0.08, "height": 0.04}},
        {"text": "Comments", "type": "label", "confidence": 95,
         "boundingBox": {"left": 0.05, "top": 0.8, "width": 0.2, "height": 0.04}},
        {"text": "see attached", "type": "input", "confidence": 95, "value": "see attached",
         "boundingBox": {"left": 0.06, "top": 0.805, "width": 0.3, "height": 0.04}},
    ]}


@pytest.fixture
def paged_payload() -> dict:
    return {
        "pages": [
            {"rawText": "Patient Name", "elements": [
                {"text": "Patient Name", "type": "label", "confidence": 97,
                 "boundingBox": {"left": 0.1, "top": 0.1, "width": 0.2, "height": 0.05}},
            ]},
            {"rawText": "", "elements": []},
            {"rawText": "Allergies", "elements": [
                {"text": "Allergies", "type": "label", "confidence": 60,
                 "boundingBox": {"left": 0.1, "top": 0.2, "width": 0.2, "height": 0.05}},
            ]},
        ]
    }


def png_bytes(width: int = 200, height: int = 100, color=(255, 255, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def form_png() -> bytes:
    return png_bytes()


@pytest.fixture
def white_image() -> Image.Image:
    return Image.new("RGBA", (100, 100), (255, 255, 255, 255))
