import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from ocr_template_builder.models.element import RecognizedElement
from ocr_template_builder.models.field import GeneratedField
from ocr_template_builder.pipeline.ingest import RecognizedDocument

logger = logging.getLogger(__name__)

PageSource = Union[str, bytes, None]
# (page index, image source, elements on that page)
RepaintListener = Callable[[int, PageSource, Tuple[RecognizedElement, ...]], None]


class MultiPageCoordinator:
    """Tracks per-page text/elements and the current page.

    Navigation clamps to the valid range and notifies the repaint listener
    only when the page actually changes.
    """

    def __init__(
        self,
        document: Optional[RecognizedDocument] = None,
        page_sources: Optional[Sequence[PageSource]] = None,
        on_page_change: Optional[RepaintListener] = None,
    ):
        self.raw_text_by_page: Dict[int, str] = {}
        self.elements_by_page: Dict[int, Tuple[RecognizedElement, ...]] = {}
        self.page_sources: List[PageSource] = []
        self.current_page_index = 0
        self.total_pages = 0
        self._listeners: List[RepaintListener] = []
        if on_page_change is not None:
            self._listeners.append(on_page_change)
        if document is not None:
            self.load(document, page_sources)

    def subscribe(self, listener: RepaintListener) -> None:
        self._listeners.append(listener)

    def load(self, document: RecognizedDocument, page_sources: Optional[Sequence[PageSource]] = None) -> None:
        """Populate both page maps from a recognition result and show page 0"""
        self.raw_text_by_page = {i: p.raw_text for i, p in enumerate(document.pages)}
        self.elements_by_page = {i: p.elements for i, p in enumerate(document.pages)}
        self.total_pages = document.total_pages
        self.page_sources = list(page_sources or [])
        self.current_page_index = 0
        logger.debug("Loaded %d page(s)", self.total_pages)
        self._notify()

    def update_page(self, page_index: int, elements: Sequence[RecognizedElement]) -> None:
        self.elements_by_page[page_index] = tuple(elements)
        if page_index == self.current_page_index:
            self._notify()

    # navigation

    def go_to(self, index: int) -> bool:
        if self.total_pages == 0:
            return False
        target = max(0, min(self.total_pages - 1, index))
        if target == self.current_page_index:
            return False
        self.current_page_index = target
        self._notify()
        return True

    def next_page(self) -> bool:
        return self.go_to(self.current_page_index + 1)

    def previous_page(self) -> bool:
        return self.go_to(self.current_page_index - 1)

    # current page accessors

    @property
    def current_elements(self) -> Tuple[RecognizedElement, ...]:
        return self.elements_by_page.get(self.current_page_index, ())

    @property
    def current_raw_text(self) -> str:
        return self.raw_text_by_page.get(self.current_page_index, "")

    @property
    def current_source(self) -> PageSource:
        if self.current_page_index < len(self.page_sources):
            return self.page_sources[self.current_page_index]
        return None

    def is_field_on_current_page(self, field: GeneratedField) -> bool:
        if self.total_pages <= 1:
            return True
        return field.page_number == self.current_page_index + 1

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self.current_page_index, self.current_source, self.current_elements)
