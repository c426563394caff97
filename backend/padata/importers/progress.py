"""Progress reporting - sinks the orchestrator pushes status updates into.

The orchestrator receives a reporter at construction and never knows how
(or whether) updates reach a user.
"""

import logging
import threading
from typing import Protocol

from padata.schemas.import_run import ProgressUpdate

logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    def publish(self, update: ProgressUpdate) -> None:
        ...


class NullProgressReporter:
    def publish(self, update: ProgressUpdate) -> None:
        pass


class LoggingProgressReporter:
    def publish(self, update: ProgressUpdate) -> None:
        if update.is_complete:
            logger.info(
                f"Import complete: {update.files_processed}/{update.files_total} files, "
                f"{update.rows_processed} rows, {len(update.errors)} errors"
            )
        else:
            logger.info(
                f"[{update.progress}%] {update.files_processed}/{update.files_total} files "
                f"({update.current_file or '-'})"
            )


class MemoryProgressReporter:
    """Keeps the latest snapshot (and full history) in process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: ProgressUpdate | None = None
        self.history: list[ProgressUpdate] = []

    def publish(self, update: ProgressUpdate) -> None:
        with self._lock:
            self._latest = update
            self.history.append(update)

    @property
    def latest(self) -> ProgressUpdate | None:
        with self._lock:
            return self._latest


class RedisProgressReporter:
    """Stores the latest snapshot under a key and publishes it on a channel.

    With a ttl the snapshot expires, so a worker killed mid-run cannot leave
    a running status behind forever.
    """

    def __init__(self, client, key: str, channel: str, ttl: int | None = None):
        self.client = client
        self.key = key
        self.channel = channel
        self.ttl = ttl

    def publish(self, update: ProgressUpdate) -> None:
        payload = update.model_dump_json()
        try:
            self.client.set(self.key, payload, ex=self.ttl)
            self.client.publish(self.channel, payload)
        except Exception as e:
            # Progress is advisory; a Redis outage must not fail the import
            logger.warning(f"Failed to publish import progress: {e}")


def read_progress(client, key: str) -> ProgressUpdate:
    """Latest snapshot stored by RedisProgressReporter, or an idle status."""
    payload = client.get(key)
    if not payload:
        return ProgressUpdate()
    return ProgressUpdate.model_validate_json(payload)
