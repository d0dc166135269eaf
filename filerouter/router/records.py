"""Append-only history of routing decisions."""

from datetime import datetime
from typing import Optional, Sequence
from urllib.parse import quote

from loguru import logger

from filerouter.errors import RecordNotFoundError
from filerouter.storage.base import KeyValueStore
from filerouter.utils.locks import KeyedLock

from .learned import LearnedPatternStore
from .models import RoutingRecord, as_leaf_path

RECORD_PREFIX = "record:"
PROJECT_INDEX_PREFIX = "project:"
NO_PROJECT = ""


class RoutingRecordLog:
    """
    Persisted audit trail of routing decisions.

    Every ``route`` call appends one record. The only mutation afterwards is
    ``report_actual``, which stores where the file really went and feeds the
    placement back into the learned pattern store.
    """

    def __init__(self, kv: KeyValueStore, patterns: LearnedPatternStore):
        self.kv = kv
        self.patterns = patterns
        self._locks = KeyedLock()

    @staticmethod
    def _key(record_id: str) -> str:
        return f"{RECORD_PREFIX}{record_id}"

    @staticmethod
    def _project_prefix(project_id: Optional[str]) -> str:
        # Quoted so ids containing ":" can't collide with another project's prefix
        return f"{PROJECT_INDEX_PREFIX}{quote(project_id, safe='') if project_id else NO_PROJECT}:"

    @staticmethod
    def _index_timestamp(created_at: str) -> str:
        # Fixed width so "HH:MM:SS" never sorts after "HH:MM:SS.ffffff"
        try:
            return datetime.fromisoformat(created_at).isoformat(timespec="microseconds")
        except ValueError:
            return created_at

    def append(self, record: RoutingRecord) -> str:
        """
        Persist a new record.

        Returns:
            The record id
        """
        key = self._key(record.id)
        with self._locks.hold(record.id):
            if self.kv.get(key) is not None:
                raise ValueError(f"Routing record {record.id} already exists")
            self.kv.set(key, record.to_dict())
            # Secondary index so a project's history is one prefix scan
            index_key = (
                f"{self._project_prefix(record.project_id)}"
                f"{self._index_timestamp(record.created_at)}:{record.id}"
            )
            self.kv.set(index_key, {"id": record.id})

        logger.debug(f"Routing record appended: {record.id} ({record.file_name})")
        return record.id

    def get(self, record_id: str) -> RoutingRecord:
        """Load a record or raise ``RecordNotFoundError``."""
        data = self.kv.get(self._key(record_id))
        if data is None:
            raise RecordNotFoundError(record_id)
        return RoutingRecord.from_dict(data)

    def report_actual(self, record_id: str, actual_path: Sequence[str]) -> RoutingRecord:
        """
        Store the folder a human actually chose for a routed file.

        Repeating the same report is a no-op. A first report, or a report of
        a different folder, updates the record and confirms the placement in
        the learned pattern store.

        Raises:
            RecordNotFoundError: unknown record id
        """
        path = as_leaf_path(actual_path)
        if not path:
            raise ValueError("actual_path must name a folder")

        with self._locks.hold(record_id):
            record = self.get(record_id)
            if record.actual_path == path:
                logger.debug(f"Record {record_id} already placed in {'/'.join(path)}")
                return record

            # Learn first: if this fails the record is untouched and a retry redoes both
            if record.signature:
                self.patterns.confirm(record.signature, path)

            record.actual_path = path
            record.reported_at = datetime.now().isoformat(timespec="microseconds")
            self.kv.set(self._key(record_id), record.to_dict())

        accepted = path == record.suggested_path
        logger.info(
            f"Record {record_id} {'accepted' if accepted else 'corrected'}: "
            f"{record.file_name} -> {'/'.join(path)}"
        )
        return record

    def list_by_project(self, project_id: Optional[str]) -> list[RoutingRecord]:
        """Records for a project, oldest first. ``None`` lists project-less records."""
        records = []
        for _, entry in self.kv.iter_prefix(self._project_prefix(project_id)):
            data = self.kv.get(self._key(entry["id"]))
            if data is not None:
                records.append(RoutingRecord.from_dict(data))
        return records

    def count(self) -> int:
        return sum(1 for _ in self.kv.iter_prefix(RECORD_PREFIX))
