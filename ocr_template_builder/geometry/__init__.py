"""Coordinate spaces: element, natural image pixels, viewport"""

from ocr_template_builder.geometry.transform import CoordinateTransformer, ViewTransform

__all__ = ["CoordinateTransformer", "ViewTransform"]
