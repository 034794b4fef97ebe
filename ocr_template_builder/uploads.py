"""
Upload handling: file checks, page rasterization and preview lifetime.

A rejected file never touches the current selection. Accepted files are
turned into one image per page on disk; PreviewSession owns those files and
deletes them when the selection is replaced or the session ends.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from ocr_template_builder.config.settings import (
    MAX_FILE_SIZE_BYTES,
    MB,
    PDF_RENDER_DPI,
    SUPPORTED_FILE_TYPES,
)
from ocr_template_builder.errors import UploadRejectedError

logger = logging.getLogger(__name__)


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower()


def validate_upload(filename: str, size: int, max_bytes: int = MAX_FILE_SIZE_BYTES) -> None:
    """Reject unsupported types and oversized files before anything else runs"""
    if file_extension(filename) not in SUPPORTED_FILE_TYPES:
        raise UploadRejectedError(
            f"Unsupported file type. Supported types: {', '.join(SUPPORTED_FILE_TYPES)}"
        )
    if size > max_bytes:
        raise UploadRejectedError(f"File too large. Maximum size: {max_bytes / MB:.1f}MB")


def rasterize(filename: str, content: bytes, out_dir: Path, dpi: int = PDF_RENDER_DPI) -> List[Path]:
    """Write one image per page into `out_dir`.

    PDFs are rendered with PyMuPDF at `dpi`; images are stored as a single
    page unchanged, so a file that fails to decode surfaces later as a
    renderer error rather than here.
    """
    ext = file_extension(filename)
    out_dir.mkdir(parents=True, exist_ok=True)
    if ext != ".pdf":
        path = out_dir / f"page_1{ext}"
        path.write_bytes(content)
        return [path]

    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except RuntimeError as e:
        raise UploadRejectedError(f"Could not read PDF: {e}") from e
    pages: List[Path] = []
    zoom = dpi / 72.0
    try:
        for i, page in enumerate(doc):
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
            path = out_dir / f"page_{i + 1}.png"
            path.write_bytes(pix.tobytes("png"))
            pages.append(path)
    finally:
        doc.close()
    logger.info("Rasterized %s into %d page(s) at %d dpi", filename, len(pages), dpi)
    return pages


def image_size(path: Path) -> Optional[Tuple[int, int]]:
    try:
        with Image.open(path) as img:
            return img.size
    except (OSError, UnidentifiedImageError):
        return None


class PreviewSession:
    """Preview files for the current file selection"""

    def __init__(self, root: Path, max_bytes: int = MAX_FILE_SIZE_BYTES):
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.directory: Optional[Path] = None
        self.filename: Optional[str] = None
        self.content: Optional[bytes] = None
        self.pages: List[Path] = []
        self.closed = False

    def select(self, filename: str, content: bytes) -> List[Path]:
        """Replace the current selection. Rejection leaves it untouched."""
        if self.closed:
            raise RuntimeError("Preview session is closed")
        validate_upload(filename, len(content), self.max_bytes)
        self.root.mkdir(parents=True, exist_ok=True)
        directory = Path(tempfile.mkdtemp(prefix="preview_", dir=self.root))
        try:
            pages = rasterize(filename, content, directory)
        except Exception:
            shutil.rmtree(directory, ignore_errors=True)
            raise
        self.release()
        self.directory, self.filename, self.content, self.pages = directory, filename, content, pages
        return pages

    def image_sizes(self) -> Dict[int, Tuple[int, int]]:
        """1-based page number -> natural (width, height) for decodable pages"""
        sizes = {}
        for i, path in enumerate(self.pages):
            size = image_size(path)
            if size is not None:
                sizes[i + 1] = size
        return sizes

    def release(self) -> None:
        if self.directory is not None:
            shutil.rmtree(self.directory, ignore_errors=True)
            logger.debug("Released preview files in %s", self.directory)
        self.directory = None
        self.filename = None
        self.content = None
        self.pages = []

    def close(self) -> None:
        self.release()
        self.closed = True

    def __enter__(self) -> "PreviewSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
