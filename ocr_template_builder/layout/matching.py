from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ocr_template_builder.layout.grouping import pixel_box
from ocr_template_builder.models.element import BoundingBox, ElementKind, RecognizedElement

LABEL_KINDS = {ElementKind.LABEL}
INPUT_KINDS = {ElementKind.INPUT, ElementKind.TEXT}


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one row"""
    pairs: List[Tuple[RecognizedElement, Optional[RecognizedElement]]] = field(default_factory=list)
    unmatched_inputs: List[RecognizedElement] = field(default_factory=list)


def _origin(box: BoundingBox, image_size: Optional[Tuple[float, float]]) -> Tuple[float, float]:
    box = pixel_box(box, image_size)
    return box.left, box.top


def distance(a: RecognizedElement, b: RecognizedElement,
             image_size: Optional[Tuple[float, float]] = None) -> float:
    ax, ay = _origin(a.bounding_box, image_size)
    bx, by = _origin(b.bounding_box, image_size)
    return math.hypot(ax - bx, ay - by)


def match_labels_to_inputs(
    group: Sequence[RecognizedElement],
    image_size: Optional[Tuple[float, float]] = None,
    max_distance: Optional[float] = None,
) -> MatchResult:
    """Pair each label with its nearest unclaimed input.

    Labels are visited in group order; once an input is claimed no later
    label may take it. A label with no candidate (or none within
    `max_distance` pixels) is paired with None. Distances are measured
    between pixel boxes, as in `group_by_rows`.
    """
    labels = [el for el in group if el.kind in LABEL_KINDS]
    remaining = [el for el in group if el.kind in INPUT_KINDS]

    pairs: List[Tuple[RecognizedElement, Optional[RecognizedElement]]] = []
    for label in labels:
        best_idx = None
        best_dist = math.inf
        for idx, candidate in enumerate(remaining):
            d = distance(label, candidate, image_size)
            if d < best_dist:
                best_idx, best_dist = idx, d
        if best_idx is not None and (max_distance is None or best_dist <= max_distance):
            pairs.append((label, remaining.pop(best_idx)))
        else:
            pairs.append((label, None))
    return MatchResult(pairs=pairs, unmatched_inputs=remaining)
