"""
Template assembly

Groups the current field list into named sections and emits a TemplateDraft.
The draft is a deep copy: later edits to the field list do not reach it.
"""

import logging
from typing import List, Mapping, Optional, Sequence

from ocr_template_builder.models.field import GeneratedField, TemplateDraft, TemplateSection

logger = logging.getLogger(__name__)

MAIN_SECTION = "Main Section"

# first keyword hit wins, checked in this order
SECTION_KEYWORDS = [
    (("demographic", "personal"), "Demographics"),
    (("medical", "history"), "Medical History"),
    (("vital", "sign"), "Vital Signs"),
    (("medication", "drug"), "Medications"),
    (("allerg",), "Allergies"),
    (("contact", "emergency"), "Contact Information"),
    (("insurance", "billing"), "Insurance Information"),
]


def section_name(section_id: str, fields: Sequence[GeneratedField], position: int) -> str:
    labels = [f.label.lower() for f in fields]
    for keywords, name in SECTION_KEYWORDS:
        if any(k in label for label in labels for k in keywords):
            return name
    suffix = section_id.replace("section_", "") if section_id.startswith("section_") else str(position + 1)
    return f"Section {suffix}"


def assemble(
    fields: Sequence[GeneratedField],
    section_map: Optional[Mapping[str, Sequence[str]]] = None,
    name: str = "",
) -> TemplateDraft:
    """Snapshot `fields` into a draft.

    With a section map, one section per key in map order; ids no longer in
    the field list are skipped and fields missing from the map go to the
    last section. Without one, a single "Main Section" holds every field.
    Field `order` is renumbered 0..n-1 within each section.
    """
    by_id = {f.id: f for f in fields}
    groups: List[tuple] = []

    if section_map:
        seen = set()
        for section_id, field_ids in section_map.items():
            members = [by_id[fid] for fid in field_ids if fid in by_id and fid not in seen]
            seen.update(f.id for f in members)
            groups.append((section_id, members))
        leftovers = [f for f in fields if f.id not in seen]
        if leftovers:
            groups[-1][1].extend(leftovers)
        groups = [(sid, members) for sid, members in groups if members] or [("section_1", [])]
        named = [(sid, section_name(sid, members, i), members) for i, (sid, members) in enumerate(groups)]
    else:
        named = [("section_1", MAIN_SECTION, list(fields))]

    out_fields: List[GeneratedField] = []
    sections: List[TemplateSection] = []
    for position, (section_id, title, members) in enumerate(named):
        for order, field in enumerate(members):
            out_fields.append(field.model_copy(update={"order": order}, deep=True))
        sections.append(TemplateSection(
            id=section_id,
            name=title,
            field_ids=[f.id for f in members],
            order=position,
        ))

    logger.info("Assembled %d field(s) into %d section(s)", len(out_fields), len(sections))
    return TemplateDraft(name=name, fields=out_fields, sections=sections)
