"""
Sketchlab session - the state a UI shell keeps between pipeline calls.

A Session holds the user's selections (threshold, export size, format), the
latest accepted upload and the currently displayed ProcessedImage. Uploads
and threshold changes run their decode in a worker thread. Each call takes a
ticket in call order and becomes the current generation once accepted (an
upload only after its bytes decode); it publishes its result only if no newer
call has been accepted in the meantime, so a slow, superseded pass can never
overwrite a newer result.
"""

import asyncio
import logging
from typing import Optional, Union

from .config import Settings, get_settings
from .errors import InvalidInputError
from .export import BatchReport, Delivery, ExportCoordinator
from .models import (
    ExportFormat,
    ExportSpec,
    ProcessedImage,
    SourceImage,
    validate_threshold,
    validate_width,
)
from .threshold import is_image_media_type, load_source, threshold

logger = logging.getLogger(__name__)


class Session:
    """Explicit replacement for the converter's UI state."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.sizes = tuple(self.settings.sizes)
        self.threshold = validate_threshold(self.settings.default_threshold)
        self.selected_size = validate_width(self.settings.default_size)
        self.selected_format = ExportFormat.parse(self.settings.default_format)

        self.source: Optional[SourceImage] = None
        self.processed: Optional[ProcessedImage] = None
        self._upload: Optional[SourceImage] = None
        self._tickets = 0
        self._generation = 0

    @property
    def upload(self) -> Optional[SourceImage]:
        """Latest accepted upload, possibly still being processed."""
        return self._upload

    @property
    def current_spec(self) -> ExportSpec:
        return ExportSpec(self.selected_size, self.selected_format)

    def _next_ticket(self) -> int:
        self._tickets += 1
        return self._tickets

    def _accept(self, ticket: int) -> bool:
        """Make ``ticket`` the current generation unless a newer call already is."""
        if ticket < self._generation:
            return False
        self._generation = ticket
        return True

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def select_size(self, size: int) -> None:
        size = validate_width(size)
        if size not in self.sizes:
            raise InvalidInputError(f"Size {size} is not one of {list(self.sizes)}")
        self.selected_size = size

    def select_format(self, export_format: Union[str, ExportFormat]) -> None:
        self.selected_format = ExportFormat.parse(export_format)

    async def load(
        self,
        data: bytes,
        media_type: Optional[str],
        name: Optional[str] = None,
    ) -> Optional[ProcessedImage]:
        """
        Accept an upload and process it at the current threshold.

        Returns:
            The new ProcessedImage, or None if a newer load/threshold call
            superseded this one before it finished

        Raises:
            InvalidInputError: Non-image upload (nothing is decoded, no state changes)
            DecodeError: Unreadable image bytes (no state changes)
        """
        if not is_image_media_type(media_type):
            raise InvalidInputError(f"Not an image upload: media type {media_type!r}")

        # Accepted only after decoding; a rejected upload supersedes nothing.
        ticket = self._next_ticket()
        source = await asyncio.to_thread(load_source, data, media_type, name)
        if not self._accept(ticket):
            logger.debug("Discarding superseded upload %s", name or "<upload>")
            return None
        self._upload = source
        return await self._process(source, self.threshold, ticket)

    async def set_threshold(self, value: int) -> Optional[ProcessedImage]:
        """
        Change the threshold and re-process the latest upload.

        Returns None when there is no upload yet or when the pass was
        superseded.
        """
        self.threshold = validate_threshold(value)
        if self._upload is None:
            return None
        ticket = self._next_ticket()
        self._accept(ticket)
        return await self._process(self._upload, self.threshold, ticket)

    async def _process(
        self,
        source: SourceImage,
        t: int,
        generation: int,
    ) -> Optional[ProcessedImage]:
        processed = await asyncio.to_thread(threshold, source, t)
        if not self._is_current(generation):
            logger.debug("Discarding stale threshold pass (t=%d)", t)
            return None
        self.source = source
        self.processed = processed
        return processed

    def preview_png(self) -> Optional[bytes]:
        return self.processed.to_png_bytes() if self.processed is not None else None

    async def download(self, coordinator: ExportCoordinator) -> Optional[Delivery]:
        """Export the current selection. No-op without a processed image."""
        return await coordinator.deliver_single(self.processed, self.current_spec)

    async def batch_export(self, coordinator: ExportCoordinator) -> BatchReport:
        """Export every catalog size in the selected format."""
        return await coordinator.export_batch(self.processed, self.selected_format)
