from pydantic import BaseModel
from typing import Dict, List

from ocr_template_builder.config.settings import Profile, load_profile


class ViewportProfile(BaseModel):
    """Review canvas size for a client layout"""
    width: int = 1024
    height: int = 768


DESKTOP = ViewportProfile(width=1024, height=768)
WIDE = ViewportProfile(width=1440, height=900)
COMPACT = ViewportProfile(width=800, height=600)

VIEWPORTS: Dict[str, ViewportProfile] = {
    "desktop": DESKTOP,
    "wide": WIDE,
    "compact": COMPACT,
}

CORS_ORIGINS: List[str] = [
    "http://localhost:5173",  # Vite default port
    "http://localhost:4200",  # Angular dev server
    "http://localhost:3000",
]


def get_profile() -> Profile:
    """Environment-driven pipeline settings (FastAPI dependency)"""
    return load_profile()
