# Tunables for the OCR template pipeline.
# Pixel values are in natural image pixels unless noted otherwise.

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

MB = 1024 * 1024

# Row clustering and label matching (pixels)
ROW_TOLERANCE = 20.0

# Viewport
FIT_MARGIN = 0.9  # 90% of the viewport to leave some margin
ZOOM_MIN = 0.25
ZOOM_MAX = 3.0
ZOOM_STEP = 0.25
MIN_CAPTURE_SIZE = 10.0  # viewport px, both axes

# Overlay label
LABEL_MAX_CHARS = 30

# Confidence tiers (0-100)
HIGH_CONFIDENCE = 90.0
MEDIUM_CONFIDENCE = 70.0
UNCERTAIN_CONFIDENCE = 80.0

# Section detection
SECTION_GAP_PX = 100.0
SECTION_GAP_RATIO = 0.1

# Uploads
SUPPORTED_FILE_TYPES = [".pdf", ".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp"]
MAX_FILE_SIZE_BYTES = 5 * MB
PDF_RENDER_DPI = 144

# Page size (px) that normalized boxes are promoted to when the image size
# is unknown: US Letter at the render DPI
REFERENCE_PAGE_SIZE = (8.5 * PDF_RENDER_DPI, 11 * PDF_RENDER_DPI)

# Simulated progress while the provider call is pending
PROGRESS_STEP = 10
PROGRESS_CEILING = 90
PROGRESS_INTERVAL_S = 0.2


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} must be a number") from exc


class Profile(BaseModel):
    provider_url: str = "http://localhost:3001/api/textract/analyze"
    timeout_s: float = 60.0
    max_file_size_bytes: int = MAX_FILE_SIZE_BYTES
    row_tolerance: float = ROW_TOLERANCE
    fit_margin: float = FIT_MARGIN
    storage_dir: Path = Path("./data/ocr_sessions")
    enhance_image: bool = True
    detect_tables: bool = True
    detect_forms: bool = True
    languages: List[str] = ["en"]


def load_profile(storage_dir: Optional[str] = None) -> Profile:
    """Build a Profile from OCR_* environment variables."""
    return Profile(
        provider_url=os.getenv("OCR_PROVIDER_URL", Profile.model_fields["provider_url"].default),
        timeout_s=_env_float("OCR_TIMEOUT_S", 60.0),
        max_file_size_bytes=int(_env_float("OCR_MAX_FILE_MB", MAX_FILE_SIZE_BYTES / MB) * MB),
        row_tolerance=_env_float("OCR_ROW_TOLERANCE", ROW_TOLERANCE),
        fit_margin=_env_float("OCR_FIT_MARGIN", FIT_MARGIN),
        storage_dir=Path(storage_dir or os.getenv("OCR_STORAGE_DIR", "./data/ocr_sessions")),
    )
