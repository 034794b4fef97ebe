"""
Tests for environment-driven settings and view state.
"""

from pathlib import Path

import pytest

from ocr_template_builder.config.settings import MB, load_profile
from ocr_template_builder.models import ViewState


class TestLoadProfile:
    """OCR_* environment variables"""

    def test_defaults(self, monkeypatch):
        for key in ("OCR_PROVIDER_URL", "OCR_TIMEOUT_S", "OCR_MAX_FILE_MB", "OCR_ROW_TOLERANCE",
                    "OCR_FIT_MARGIN", "OCR_STORAGE_DIR"):
            monkeypatch.delenv(key, raising=False)
        profile = load_profile()
        assert profile.timeout_s == 60.0
        assert profile.max_file_size_bytes == 5 * MB
        assert profile.row_tolerance == 20.0
        assert profile.fit_margin == 0.9

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OCR_PROVIDER_URL", "http://ocr.internal/analyze")
        monkeypatch.setenv("OCR_MAX_FILE_MB", "10")
        monkeypatch.setenv("OCR_ROW_TOLERANCE", "12.5")
        monkeypatch.setenv("OCR_STORAGE_DIR", str(tmp_path))
        profile = load_profile()
        assert profile.provider_url == "http://ocr.internal/analyze"
        assert profile.max_file_size_bytes == 10 * MB
        assert profile.row_tolerance == 12.5
        assert profile.storage_dir == Path(tmp_path)

    def test_explicit_storage_dir_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OCR_STORAGE_DIR", "/elsewhere")
        assert load_profile(str(tmp_path)).storage_dir == Path(tmp_path)

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("OCR_TIMEOUT_S", "soon")
        with pytest.raises(ValueError, match="OCR_TIMEOUT_S"):
            load_profile()


class TestViewState:
    """Zoom clamping on assignment"""

    @pytest.mark.parametrize("value,expected", [(0.1, 0.25), (1.5, 1.5), (7, 3.0)])
    def test_zoom_clamped(self, value, expected):
        view = ViewState()
        view.zoom_level = value
        assert view.zoom_level == expected

    def test_defaults(self):
        view = ViewState()
        assert view.show_bounding_boxes and view.show_confidence_scores
        assert view.current_page_index == 0
