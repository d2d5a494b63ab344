"""Best-effort JSON snapshot persistence.

The whole engine state is one document::

    {"definitions": [...], "instances": [...]}

It is loaded once at startup and rewritten in full after every successful
mutation. Nothing here ever raises into the engine: a bad or missing file means
starting empty, and a failed write is logged and dropped.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path

from pydantic import ValidationError

from .errors import DefinitionValidationError
from .models import WorkflowData
from .validator import check_structure

logger = logging.getLogger(__name__)


class SnapshotStore:
    """JSON-file backed store for the full definitions/instances snapshot."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> WorkflowData:
        if not self._path.exists():
            return WorkflowData()

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.warning(
                "Workflow data file could not be read; starting empty",
                exc_info=True,
                extra={"path": str(self._path)},
            )
            return WorkflowData()

        if raw is None:
            return WorkflowData()

        if not isinstance(raw, dict):
            logger.warning(
                "Workflow data file has unexpected shape; starting empty",
                extra={"path": str(self._path)},
            )
            return WorkflowData()

        try:
            data = WorkflowData.model_validate(raw)
        except ValidationError as e:
            logger.warning(
                "Workflow data file failed validation; starting empty",
                extra={"path": str(self._path), "errors": e.error_count()},
            )
            return WorkflowData()

        # Definitions must still satisfy the rules they were created under.
        for definition in data.definitions:
            try:
                check_structure(definition.name, definition.states, definition.actions)
            except DefinitionValidationError as e:
                logger.warning(
                    "Workflow data file holds an invalid definition; starting empty",
                    extra={
                        "path": str(self._path),
                        "definition_id": definition.id,
                        "code": e.code,
                    },
                )
                return WorkflowData()
        return data

    def save(self, data: WorkflowData) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = data.model_dump(mode="json", by_alias=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        tmp.replace(self._path)


class SnapshotWriter:
    """Fire-and-forget, coalescing writer for :class:`SnapshotStore`.

    Only the most recently submitted snapshot is kept. A single worker thread
    drains it, so a burst of mutations costs one write per drain pass rather
    than one per mutation. Failures are logged and never propagated.
    """

    def __init__(self, store: SnapshotStore) -> None:
        self._store = store
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot-writer")
        self._lock = threading.Lock()
        self._latest: WorkflowData | None = None
        self._drain_future: Future[None] | None = None
        self._draining = False
        self._closed = False

    @property
    def store(self) -> SnapshotStore:
        return self._store

    def submit(self, data: WorkflowData) -> None:
        with self._lock:
            if self._closed:
                logger.warning(
                    "Snapshot writer is closed; dropping write",
                    extra={"path": str(self._store.path)},
                )
                return
            self._latest = data
            if not self._draining:
                self._draining = True
                self._drain_future = self._executor.submit(self._drain)

    def _drain(self) -> None:
        while True:
            with self._lock:
                data, self._latest = self._latest, None
                if data is None:
                    self._draining = False
                    return
            self._write(data)

    def _write(self, data: WorkflowData) -> None:
        try:
            self._store.save(data)
        except Exception:
            logger.exception(
                "Failed to save workflow data", extra={"path": str(self._store.path)}
            )

    def flush(self) -> None:
        """Block until the latest submitted snapshot has been attempted."""

        with self._lock:
            future = self._drain_future
        if future is not None:
            wait([future])

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=True)
