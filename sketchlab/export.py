"""
Sketchlab Export Module - single and batch export of processed line art.

An export turns a ProcessedImage into a named artifact (``sketch-600px.png``,
``sketch-1200px.svg``, ...) and hands it to a delivery sink. Batch export walks
the whole size catalog for the selected format and delivers one artifact at a
time through a DeliveryQueue, which keeps a minimum pause between deliveries
and cleans up the temporary files staged for vector artifacts.

Failure policy for batches is skip-and-continue: an export that fails is logged
and recorded in the BatchReport, and the remaining specs are still exported.

Usage:
    import asyncio
    from sketchlab.export import DeliveryQueue, DirectorySink, ExportCoordinator

    coordinator = ExportCoordinator(DeliveryQueue(DirectorySink("exports")))
    report = asyncio.run(coordinator.export_batch(processed, ExportFormat.VECTOR))
    report.raise_for_failures()
"""

import asyncio
import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

import cv2

from .errors import ExportError, SketchlabError
from .models import (
    SIZE_CATALOG,
    ExportArtifact,
    ExportFormat,
    ExportSpec,
    ProcessedImage,
    encode_png,
)
from .output import wrap_bytes
from .resize import resize

logger = logging.getLogger(__name__)

# Errors a resize/wrap/encode step can raise for one artifact.
_STEP_ERRORS = (SketchlabError, cv2.error, ValueError, OSError, MemoryError)


# =============================================================================
# Sinks
# =============================================================================

class DirectorySink:
    """Saves delivered artifacts into a directory, like a browser download."""

    def __init__(self, output_dir: Union[str, Path], overwrite: bool = True):
        self.output_dir = Path(output_dir)
        self.overwrite = overwrite

    def deliver(self, artifact: ExportArtifact, source: Union[bytes, Path]) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / artifact.filename
        if target.exists() and not self.overwrite:
            raise FileExistsError(f"{target} already exists")

        if isinstance(source, Path):
            shutil.copyfile(source, target)
        else:
            target.write_bytes(source)
        return target


class MemorySink:
    """Collects delivered payloads in delivery order."""

    def __init__(self):
        self.delivered: List[ExportArtifact] = []
        self.payloads: List[bytes] = []

    def deliver(self, artifact: ExportArtifact, source: Union[bytes, Path]) -> None:
        payload = source.read_bytes() if isinstance(source, Path) else source
        self.delivered.append(artifact)
        self.payloads.append(payload)

    @property
    def filenames(self) -> List[str]:
        return [a.filename for a in self.delivered]


# =============================================================================
# Delivery queue
# =============================================================================

@dataclass
class Delivery:
    """Record of one artifact handed to the sink."""
    artifact: ExportArtifact
    location: Optional[Path] = None
    delivered_at: float = 0.0

    @property
    def filename(self) -> str:
        return self.artifact.filename


class DeliveryQueue:
    """
    Delivers artifacts one at a time with a minimum interval between them.

    Vector artifacts are staged to a temporary file before the sink sees them;
    the file is removed ``release_delay`` seconds after delivery was triggered,
    whether or not the sink succeeded.
    """

    def __init__(
        self,
        sink,
        interval: float = 0.1,
        release_delay: float = 0.1,
        clock=time.monotonic,
    ):
        if interval < 0 or release_delay < 0:
            raise ValueError("interval and release_delay must be >= 0")
        self.sink = sink
        self.interval = interval
        self.release_delay = release_delay
        self._clock = clock
        self._last_delivery: Optional[float] = None
        self._lock = asyncio.Lock()
        self._pending: Dict[Path, Optional[asyncio.TimerHandle]] = {}

    @property
    def pending_releases(self) -> List[Path]:
        return list(self._pending)

    async def deliver(self, artifact: ExportArtifact) -> Delivery:
        """
        Hand one artifact to the sink, waiting out the interval first.

        Raises:
            ExportError: If staging or the sink fails
        """
        async with self._lock:
            await self._wait_turn()

            staged = None
            try:
                if artifact.is_vector:
                    staged = self._stage(artifact)
                location = self.sink.deliver(
                    artifact, staged if staged is not None else artifact.payload
                )
            except ExportError:
                raise
            except Exception as e:
                # Sinks are pluggable; any failure counts against this artifact only.
                raise ExportError(f"Delivery of {artifact.filename} failed: {e}") from e
            finally:
                self._last_delivery = self._clock()
                if staged is not None:
                    self._schedule_release(staged)

            logger.info("Delivered %s (%d bytes)", artifact.filename, len(artifact))
            return Delivery(
                artifact=artifact,
                location=location if isinstance(location, Path) else None,
                delivered_at=self._last_delivery,
            )

    async def _wait_turn(self) -> None:
        if self._last_delivery is None or self.interval <= 0:
            return
        remaining = self.interval - (self._clock() - self._last_delivery)
        if remaining > 0:
            await asyncio.sleep(remaining)

    def _stage(self, artifact: ExportArtifact) -> Path:
        suffix = Path(artifact.filename).suffix
        fd, name = tempfile.mkstemp(prefix="sketchlab-", suffix=suffix)
        with os.fdopen(fd, "wb") as f:
            f.write(artifact.payload)
        return Path(name)

    def _schedule_release(self, path: Path) -> None:
        if self.release_delay <= 0:
            self._pending[path] = None
            self._release(path)
            return
        loop = asyncio.get_running_loop()
        self._pending[path] = loop.call_later(self.release_delay, self._release, path)

    def _release(self, path: Path) -> None:
        self._pending.pop(path, None)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove staged file %s: %s", path, e)
            return
        logger.debug("Released %s", path)

    def close(self) -> None:
        """Release every staged file now, cancelling scheduled releases."""
        for path, handle in list(self._pending.items()):
            if handle is not None:
                handle.cancel()
            self._release(path)

    async def drain(self) -> None:
        """Wait for scheduled releases to run, then release anything left."""
        if self._pending:
            await asyncio.sleep(self.release_delay)
        self.close()


# =============================================================================
# Coordinator
# =============================================================================

@dataclass
class BatchReport:
    """Outcome of a batch export, in spec order."""
    delivered: List[Delivery] = field(default_factory=list)
    failures: List[ExportError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def filenames(self) -> List[str]:
        return [d.filename for d in self.delivered]

    def raise_for_failures(self) -> None:
        if self.failures:
            names = ", ".join(e.filename or "?" for e in self.failures)
            raise ExportError(f"{len(self.failures)} export(s) failed: {names}")


class ExportCoordinator:
    """Builds export artifacts and delivers them through a DeliveryQueue."""

    def __init__(
        self,
        queue: Optional[DeliveryQueue] = None,
        sizes: Sequence[int] = SIZE_CATALOG,
    ):
        self.queue = queue
        self.sizes = tuple(sizes)

    def batch_specs(self, format: Union[str, ExportFormat] = ExportFormat.RASTER) -> List[ExportSpec]:
        """Every catalog size for one format, in catalog order."""
        export_format = ExportFormat.parse(format)
        return [ExportSpec(size, export_format) for size in self.sizes]

    def export_single(
        self,
        processed: Optional[ProcessedImage],
        spec: ExportSpec,
    ) -> Optional[ExportArtifact]:
        """
        Produce one artifact: resize, then PNG-encode or wrap in SVG.

        Args:
            processed: Current line art, or None if nothing was processed yet
            spec: Target width and format

        Returns:
            ExportArtifact, or None when there is no processed image

        Raises:
            ExportError: If resizing or encoding fails
        """
        if processed is None:
            logger.info("Nothing to export: no processed image")
            return None

        try:
            raster = resize(processed, spec.target_width)
            if spec.format is ExportFormat.VECTOR:
                payload = wrap_bytes(raster)
            else:
                payload = encode_png(raster)
        except _STEP_ERRORS as e:
            raise ExportError(f"Export of {spec.filename} failed: {e}", spec=spec) from e

        height, width = raster.shape[:2]
        return ExportArtifact(
            filename=spec.filename,
            payload=payload,
            mime_type=spec.format.mime_type,
            width=width,
            height=height,
        )

    def build_artifacts(
        self,
        processed: Optional[ProcessedImage],
        specs: Iterable[ExportSpec],
    ) -> Iterator[ExportArtifact]:
        """Yield artifacts lazily, one per spec, in order."""
        if processed is None:
            return
        for spec in specs:
            yield self.export_single(processed, spec)

    async def deliver_single(
        self,
        processed: Optional[ProcessedImage],
        spec: ExportSpec,
    ) -> Optional[Delivery]:
        """Export one spec and deliver it. No-op without a processed image."""
        artifact = self.export_single(processed, spec)
        if artifact is None:
            return None
        try:
            return await self._require_queue().deliver(artifact)
        except ExportError as e:
            if e.spec is None:
                e.spec = spec
            raise

    async def export_batch(
        self,
        processed: Optional[ProcessedImage],
        format: Union[str, ExportFormat] = ExportFormat.RASTER,
        specs: Optional[Sequence[ExportSpec]] = None,
    ) -> BatchReport:
        """
        Export and deliver every spec sequentially.

        Without explicit ``specs`` the full size catalog is used for
        ``format``; the session's single selected size is not consulted.
        """
        report = BatchReport()
        if processed is None:
            logger.info("Nothing to export: no processed image")
            return report

        queue = self._require_queue()
        for spec in specs if specs is not None else self.batch_specs(format):
            try:
                artifact = self.export_single(processed, spec)
                report.delivered.append(await queue.deliver(artifact))
            except ExportError as e:
                if e.spec is None:
                    e.spec = spec
                logger.error("Skipping %s: %s", spec.filename, e)
                report.failures.append(e)

        return report

    def _require_queue(self) -> DeliveryQueue:
        if self.queue is None:
            raise ExportError("No delivery queue configured")
        return self.queue
