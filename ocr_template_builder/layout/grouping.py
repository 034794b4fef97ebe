from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ocr_template_builder.config.settings import REFERENCE_PAGE_SIZE, ROW_TOLERANCE
from ocr_template_builder.models.element import BoundingBox, RecognizedElement

# A row of elements sharing a page and an approximate vertical position,
# ordered left-to-right.
ElementGroup = Tuple[RecognizedElement, ...]


def pixel_box(box: BoundingBox, image_size: Optional[Tuple[float, float]] = None) -> BoundingBox:
    """`box` in pixels; normalized boxes use `image_size` or the reference page"""
    return box.to_pixels(*(image_size or REFERENCE_PAGE_SIZE))


def group_by_rows(
    elements: Sequence[RecognizedElement],
    tolerance: float = ROW_TOLERANCE,
    image_size: Optional[Tuple[float, float]] = None,
) -> List[ElementGroup]:
    """Cluster elements into horizontal rows.

    First-fit: each element joins the first group whose running mean top is
    strictly within `tolerance` pixels, otherwise it starts a new group.
    Groups keep creation order; members are sorted by left (stable).

    Normalized boxes are promoted to pixels first, against `image_size` when
    given and REFERENCE_PAGE_SIZE otherwise.
    """
    if not elements:
        return []
    clusters: List[List[RecognizedElement]] = []
    top_sums: List[float] = []
    for el in elements:
        top = pixel_box(el.bounding_box, image_size).top
        placed = False
        for i, cluster in enumerate(clusters):
            mean_top = top_sums[i] / len(cluster)
            if abs(top - mean_top) < tolerance:
                cluster.append(el)
                top_sums[i] += top
                placed = True
                break
        if not placed:
            clusters.append([el])
            top_sums.append(top)
    return [tuple(sorted(c, key=lambda e: pixel_box(e.bounding_box, image_size).left)) for c in clusters]
