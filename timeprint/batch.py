"""Batch restoration orchestrator.

Runs photos through the remote restoration client one at a time, applying
state-machine transitions on the shared collection and turning every failure
into a message stored on the affected item.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, Union

from timeprint.ai.errors import (
    AuthError,
    NetworkError,
    QuotaError,
    RestorationTimeoutError,
)
from timeprint.photos.collection import PhotoCollection
from timeprint.photos.item import PhotoItem, PhotoStatus, RestoredImage, fail, start, succeed
from timeprint.preprocessing.loader import to_data_url
from timeprint.settings import RestorationMode, SessionSettings
from timeprint.utils.timeout import with_timeout

logger = logging.getLogger(__name__)

CREDENTIAL_INVALID_MESSAGE = "API key is invalid, please select a key again."
QUOTA_EXCEEDED_MESSAGE = (
    "API quota exhausted. Please try again later, or check your quota limits "
    "in Google AI Studio."
)
CONNECTIVITY_MESSAGE = "Network connection failed, please check your network settings."
TIMEOUT_MESSAGE = "Request timed out, please retry."
DEFAULT_FAILURE_MESSAGE = "Restoration failed, please retry."

ProgressCallback = Callable[[int, int, PhotoItem], None]


class RestorationClient(Protocol):
    async def restore(
        self, image: Union[bytes, str], mime_type: str, mode: RestorationMode
    ) -> RestoredImage:
        ...


@dataclass
class BatchSummary:
    """Outcome of one ``process_all`` run."""

    attempted: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    elapsed: float = 0.0


def classify_failure(error: BaseException, settings: SessionSettings) -> str:
    """Turn any failure into the message shown on the photo.

    An invalid-credential signal also downgrades ``settings.has_api_key`` so
    the front end can prompt for a new key.
    """
    message = str(error)

    if isinstance(error, RestorationTimeoutError):
        return TIMEOUT_MESSAGE
    if isinstance(error, AuthError) or "Requested entity was not found" in message:
        settings.has_api_key = False
        return CREDENTIAL_INVALID_MESSAGE
    if (
        isinstance(error, QuotaError)
        or "quota" in message
        or "429" in message
        or "RESOURCE_EXHAUSTED" in message
    ):
        return QUOTA_EXCEEDED_MESSAGE
    if isinstance(error, NetworkError) or "fetch failed" in message:
        return CONNECTIVITY_MESSAGE
    return message or DEFAULT_FAILURE_MESSAGE


class BatchOrchestrator:
    """Sequences restoration calls over a photo collection."""

    def __init__(
        self,
        collection: PhotoCollection,
        client: RestorationClient,
        settings: Optional[SessionSettings] = None,
    ) -> None:
        self.collection = collection
        self.client = client
        self.settings = settings or SessionSettings()
        self.is_processing_all = False

    async def process_one(self, item: Union[PhotoItem, str]) -> Optional[PhotoItem]:
        """Restore a single photo, recording the outcome on the item.

        Never raises for restoration failures: they end up in the item's
        ``error`` field instead.

        Args:
            item: The photo (or its id). Its current state in the collection
                is what counts, not the state of the object passed in.

        Returns:
            The item's state after this call, or None if it is not in the
            collection.
        """
        item_id = item if isinstance(item, str) else item.id
        current = self.collection.get(item_id)
        if current is None:
            logger.debug(f"Skipping {item_id}: no longer in collection")
            return None

        started = self.collection.update(item_id, start)
        if started is current:
            logger.debug(f"Skipping {current.name}: already {current.status.value}")
            return current

        source = started.source
        try:
            encoded = to_data_url(source.data, source.mime_type)
            # Mode is read here so a mid-batch change applies to the next call
            operation = self.client.restore(encoded, source.mime_type, self.settings.mode)
            result = await with_timeout(operation, self.settings.timeout_ms)
        except Exception as e:
            logger.error(f"Restoration error for {source.name}: {e}")
            message = classify_failure(e, self.settings)
            return self.collection.update(item_id, lambda p: fail(p, message))

        logger.info(f"Restored {source.name} ({len(result.data) / 1024:.0f} KiB {result.mime_type})")
        return self.collection.update(item_id, lambda p: succeed(p, result))

    async def process_all(
        self,
        items: Optional[Iterable[PhotoItem]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchSummary:
        """Restore every pending or failed photo, strictly one after another.

        The eligible set is fixed when the call starts; photos added later wait
        for the next run. One photo failing never stops the others.

        Args:
            items: Photos to consider. Defaults to the whole collection.
            on_progress: Called as ``(index, total, item)`` after each photo.

        Returns:
            BatchSummary with per-outcome counts.
        """
        summary = BatchSummary()
        if self.is_processing_all:
            logger.warning("Batch already in progress; ignoring new batch request")
            return summary

        pool = self.collection.snapshot() if items is None else tuple(items)
        batch = [p for p in pool if p.is_eligible]
        total = len(batch)

        logger.info(f"Processing {total} photo(s) in {self.settings.mode.value} mode")

        start_time = time.time()
        self.is_processing_all = True
        try:
            for index, photo in enumerate(batch, 1):
                current = self.collection.get(photo.id)
                if current is None or not current.is_eligible:
                    # removed, or picked up by a single-photo retry meanwhile
                    logger.info(f"[{index}/{total}] {photo.name}: skipped")
                    summary.skipped += 1
                    continue

                logger.info(f"[{index}/{total}] {photo.name}")
                outcome = await self.process_one(current)
                summary.attempted += 1

                if outcome is None:
                    summary.skipped += 1
                elif outcome.status is PhotoStatus.COMPLETED:
                    summary.completed += 1
                else:
                    summary.failed += 1

                if on_progress is not None and outcome is not None:
                    on_progress(index, total, outcome)
        finally:
            self.is_processing_all = False
            summary.elapsed = time.time() - start_time

        logger.info(
            f"Batch complete: {summary.completed} restored, {summary.failed} failed, "
            f"{summary.skipped} skipped in {summary.elapsed:.1f}s"
        )
        return summary
