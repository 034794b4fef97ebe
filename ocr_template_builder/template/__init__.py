"""Section detection and template assembly"""

from ocr_template_builder.template.assembler import assemble
from ocr_template_builder.template.sections import detect_sections

__all__ = ["assemble", "detect_sections"]
