"""
Recognition provider client

Posts a document to the configured provider and returns the parsed result.
While the request is pending a ProgressTracker climbs towards 90% so the UI
has something to show; it is reset to 0 however the call ends.
"""

import asyncio
import contextlib
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx
from pydantic import BaseModel, Field

from ocr_template_builder.config.settings import (
    PROGRESS_CEILING,
    PROGRESS_INTERVAL_S,
    PROGRESS_STEP,
    Profile,
    load_profile,
)
from ocr_template_builder.errors import RecognitionError
from ocr_template_builder.models.element import FlatResult, PagedResult
from ocr_template_builder.pipeline.ingest import parse_result

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RecognitionOptions(BaseModel):
    enhance_image: bool = True
    detect_tables: bool = True
    detect_forms: bool = True
    languages: List[str] = Field(default_factory=lambda: ["en"])

    @classmethod
    def from_profile(cls, profile: Profile) -> "RecognitionOptions":
        return cls(
            enhance_image=profile.enhance_image,
            detect_tables=profile.detect_tables,
            detect_forms=profile.detect_forms,
            languages=list(profile.languages),
        )

    def to_form(self) -> Dict[str, str]:
        return {
            "enhanceImage": json.dumps(self.enhance_image),
            "detectTables": json.dumps(self.detect_tables),
            "detectForms": json.dumps(self.detect_forms),
            "languages": json.dumps(self.languages),
        }


class ProgressTracker:
    """Simulated progress: 0 -> ceiling in fixed steps, reset to 0 at the end"""

    def __init__(
        self,
        step: int = PROGRESS_STEP,
        ceiling: int = PROGRESS_CEILING,
        interval_s: float = PROGRESS_INTERVAL_S,
        sleep: Sleep = asyncio.sleep,
    ):
        self.step = step
        self.ceiling = ceiling
        self.interval_s = interval_s
        self._sleep = sleep
        self.value = 0
        self.history: List[int] = []

    async def run(self) -> None:
        while self.value < self.ceiling:
            await self._sleep(self.interval_s)
            self.value = min(self.ceiling, self.value + self.step)
            self.history.append(self.value)

    def reset(self) -> None:
        self.value = 0


class RecognitionClient:
    """Async client for the recognition provider endpoint"""

    def __init__(
        self,
        profile: Optional[Profile] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        progress: Optional[ProgressTracker] = None,
    ):
        self.profile = profile or load_profile()
        self.transport = transport
        self.progress = progress or ProgressTracker()
        self._lock = asyncio.Lock()

    async def _post(self, content: bytes, filename: str, options: RecognitionOptions) -> Dict[str, Any]:
        files = {"document": (filename, content, "application/octet-stream")}
        async with httpx.AsyncClient(transport=self.transport, timeout=self.profile.timeout_s) as client:
            r = await client.post(self.profile.provider_url, files=files, data=options.to_form())
            r.raise_for_status()
            return r.json()

    async def recognize(
        self,
        content: bytes,
        filename: str,
        options: Optional[RecognitionOptions] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> Union[FlatResult, PagedResult]:
        """Run recognition on one document.

        `progress` overrides the client-wide tracker for this call.

        Raises:
            RecognitionError: transport failure, HTTP error status, timeout,
                unparseable payload or a result with no elements.
        """
        options = options or RecognitionOptions.from_profile(self.profile)
        timeout = self.profile.timeout_s
        progress = progress or self.progress

        async with self._lock:  # one provider call at a time
            progress.reset()
            ticker = asyncio.create_task(progress.run())
            try:
                logger.info("Sending %s (%d bytes) to %s", filename, len(content), self.profile.provider_url)
                payload = await asyncio.wait_for(self._post(content, filename, options), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise RecognitionError(f"Recognition timed out after {timeout:g}s") from e
            except httpx.HTTPStatusError as e:
                raise RecognitionError(f"Recognition provider returned {e.response.status_code}") from e
            except (httpx.HTTPError, ValueError) as e:
                raise RecognitionError(f"Recognition request failed: {e}") from e
            finally:
                ticker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await ticker
                progress.reset()

        try:
            result = parse_result(payload)
        except (TypeError, ValueError) as e:
            raise RecognitionError(f"Unrecognized provider response: {e}") from e
        if _is_empty(result):
            raise RecognitionError("No text detected in the document")
        logger.info("Recognition finished for %s", filename)
        return result


def _is_empty(result: Union[FlatResult, PagedResult]) -> bool:
    if isinstance(result, PagedResult):
        return not any(page.elements for page in result.pages)
    return not result.elements
