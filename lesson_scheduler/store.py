"""
Assignment persistence.

A store holds the current timetable of each institution as a list of
assignment rows (see Assignment.to_record). Replacing an institution's
rows is all-or-nothing: readers see either the old timetable or the new
one, never a mix.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Iterable, Protocol, Union
from urllib.parse import quote

from .data.models import Assignment
from .errors import StoreError

logger = logging.getLogger(__name__)

AssignmentRow = dict[str, Any]


class AssignmentStore(Protocol):
    """What the pipeline needs from persistence."""

    def get_assignments(self, institution_id: str) -> list[AssignmentRow]: ...

    def has_assignments(self, institution_id: str) -> bool: ...

    def replace_assignments(self, institution_id: str, assignments: Iterable[Assignment]) -> int: ...

    def delete_assignments(self, institution_id: str) -> int: ...


def _to_rows(institution_id: str, assignments: Iterable[Assignment]) -> list[AssignmentRow]:
    return [a.to_record(institution_id) for a in assignments]


class InMemoryAssignmentStore:
    """Dictionary-backed store, safe to share between threads."""

    def __init__(self):
        self._rows: dict[str, list[AssignmentRow]] = {}
        self._lock = threading.Lock()

    def get_assignments(self, institution_id: str) -> list[AssignmentRow]:
        with self._lock:
            return [dict(row) for row in self._rows.get(institution_id, [])]

    def has_assignments(self, institution_id: str) -> bool:
        with self._lock:
            return bool(self._rows.get(institution_id))

    def replace_assignments(self, institution_id: str, assignments: Iterable[Assignment]) -> int:
        """Swap in the new rows. Returns the number of rows stored."""
        rows = _to_rows(institution_id, assignments)
        with self._lock:
            previous = len(self._rows.get(institution_id, []))
            self._rows[institution_id] = rows
        logger.debug("Replaced %d rows with %d for %s", previous, len(rows), institution_id)
        return len(rows)

    def delete_assignments(self, institution_id: str) -> int:
        with self._lock:
            return len(self._rows.pop(institution_id, []))


class JsonAssignmentStore:
    """
    One JSON file per institution under a directory.

    Writes go to a temporary file in the same directory which is then
    moved over the target with os.replace.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, institution_id: str) -> Path:
        """
        File of an institution.

        IDs are percent-encoded with no safe characters, so the mapping is
        one-to-one and never leaves the directory.
        """
        return self.directory / f"{quote(institution_id, safe='')}.json"

    def get_assignments(self, institution_id: str) -> list[AssignmentRow]:
        """
        Raises:
            StoreError: If the file holds another institution's rows
        """
        path = self.path_for(institution_id)
        if not path.exists():
            return []
        with open(path) as f:
            payload = json.load(f)

        stored_id = payload.get("institution_id")
        if stored_id != institution_id:
            raise StoreError(
                f"{path} holds assignments of {stored_id!r}, not {institution_id!r}",
                details={"path": str(path), "institution_id": institution_id, "stored_id": stored_id},
            )
        return payload["assignments"]

    def has_assignments(self, institution_id: str) -> bool:
        return bool(self.get_assignments(institution_id))

    def replace_assignments(self, institution_id: str, assignments: Iterable[Assignment]) -> int:
        rows = _to_rows(institution_id, assignments)
        payload = {"institution_id": institution_id, "assignments": rows}
        path = self.path_for(institution_id)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Wrote %d rows for %s to %s", len(rows), institution_id, path)
        return len(rows)

    def delete_assignments(self, institution_id: str) -> int:
        path = self.path_for(institution_id)
        if not path.exists():
            return 0
        count = len(self.get_assignments(institution_id))
        path.unlink()
        return count
