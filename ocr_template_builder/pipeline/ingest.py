"""
Recognition result ingestion

Accepts either response shape from the recognition provider and normalizes
it once into a canonical per-page element list. Everything downstream reads
`RecognizedDocument` and never looks at the raw payload again.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from ocr_template_builder.models.element import (
    FlatResult,
    PagedResult,
    RecognitionResult,
    RecognizedElement,
)

logger = logging.getLogger(__name__)

_RESULT_ADAPTER = TypeAdapter(RecognitionResult)


@dataclass(frozen=True)
class PageContent:
    raw_text: str = ""
    elements: Tuple[RecognizedElement, ...] = ()


@dataclass(frozen=True)
class RecognizedDocument:
    """Immutable per-page snapshot of one recognition result"""
    pages: Tuple[PageContent, ...] = field(default_factory=lambda: (PageContent(),))

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def element_count(self) -> int:
        return sum(len(p.elements) for p in self.pages)

    def elements(self, page_index: int) -> Tuple[RecognizedElement, ...]:
        return self.pages[page_index].elements

    def replace_page(self, page_index: int, elements: Tuple[RecognizedElement, ...]) -> "RecognizedDocument":
        pages = list(self.pages)
        pages[page_index] = PageContent(raw_text=pages[page_index].raw_text, elements=tuple(elements))
        return RecognizedDocument(pages=tuple(pages))


def parse_result(payload: Union[Mapping[str, Any], FlatResult, PagedResult]) -> Union[FlatResult, PagedResult]:
    """Validate a provider payload into the tagged result type.

    The `{"success": ..., "data": {...}}` envelope is unwrapped and the
    `shape` tag is added when the provider leaves it out.
    """
    if isinstance(payload, (FlatResult, PagedResult)):
        return payload
    data: Dict[str, Any] = dict(payload or {})
    if isinstance(data.get("data"), Mapping):
        data = dict(data["data"])
    if "shape" not in data:
        data["shape"] = "paged" if "pages" in data else "flat"
    return _RESULT_ADAPTER.validate_python(data)


def _element(raw: Any, page_number: int, position: int) -> Union[RecognizedElement, None]:
    try:
        el = RecognizedElement.model_validate(raw)
    except ValidationError as e:
        logger.warning("Skipping malformed element %d on page %d: %s", position, page_number, e.errors()[:1])
        return None
    updates = {}
    if not el.id:
        updates["id"] = f"el_{page_number}_{position + 1}"
    if el.page_number != page_number:
        updates["page_number"] = page_number
    return el.model_copy(update=updates) if updates else el


def normalize(payload: Union[Mapping[str, Any], FlatResult, PagedResult]) -> RecognizedDocument:
    """Normalize either response shape into per-page element tuples.

    Flat results are split by each element's `pageNumber` (1 when absent).
    The document always has at least one page.
    """
    result = parse_result(payload)

    if isinstance(result, PagedResult):
        pages: List[PageContent] = []
        for i, page in enumerate(result.pages):
            elements = [_element(raw, i + 1, j) for j, raw in enumerate(page.elements)]
            pages.append(PageContent(raw_text=page.raw_text,
                                     elements=tuple(e for e in elements if e is not None)))
        document = RecognizedDocument(pages=tuple(pages) or (PageContent(),))
    else:
        by_page: Dict[int, List[RecognizedElement]] = {}
        for j, raw in enumerate(result.elements):
            hinted = raw.get("pageNumber", raw.get("page_number")) if isinstance(raw, Mapping) else None
            page_number = hinted if isinstance(hinted, int) and hinted >= 1 else 1
            el = _element(raw, page_number, j)
            if el is not None:
                by_page.setdefault(page_number, []).append(el)
        total = max(by_page) if by_page else 1
        document = RecognizedDocument(pages=tuple(
            PageContent(raw_text=result.raw_text if n == 1 else "", elements=tuple(by_page.get(n, [])))
            for n in range(1, total + 1)
        ))

    logger.info("Ingested %d element(s) across %d page(s)", document.element_count, document.total_pages)
    return document
