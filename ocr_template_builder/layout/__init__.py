"""Row clustering and label/input pairing"""

from ocr_template_builder.layout.grouping import ElementGroup, group_by_rows
from ocr_template_builder.layout.matching import MatchResult, match_labels_to_inputs

__all__ = ["ElementGroup", "group_by_rows", "MatchResult", "match_labels_to_inputs"]
