from __future__ import annotations

import json
import logging
from collections.abc import MutableMapping
from pathlib import Path
from typing import Generic, TypeVar

from checkin.models import GeoPoint, JobSession, TrackingWindow

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class InMemoryKeyValueDatabase(Generic[K, V]):
    """
    Simple in-memory key/value database.
    """

    def __init__(self) -> None:
        self._store: MutableMapping[K, V] = {}

    def put(self, key: K, value: V) -> None:
        self._store[key] = value

    def get(self, key: K) -> V | None:
        return self._store.get(key)

    def delete(self, key: K) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class Database:
    """
    Latest backend snapshots, keyed by job session id.

    ``windows`` holds the most recent evaluation produced by a watcher.
    """

    def __init__(self) -> None:
        self.sessions: InMemoryKeyValueDatabase[int, JobSession] = (
            InMemoryKeyValueDatabase()
        )
        self.locations: InMemoryKeyValueDatabase[int, GeoPoint] = (
            InMemoryKeyValueDatabase()
        )
        self.windows: InMemoryKeyValueDatabase[int, TrackingWindow] = (
            InMemoryKeyValueDatabase()
        )

    def clear(self) -> None:
        self.sessions.clear()
        self.locations.clear()
        self.windows.clear()


_db: Database | None = None


def get_db() -> Database:
    """Get the global database instance."""
    global _db
    if _db is None:
        _db = Database()
    return _db


def load_sample_data(db: Database | None = None, path: Path | None = None) -> None:
    """
    Load sessions and job locations from sample_data.json.

    Each entry is a backend application record: ``job_session`` plus a
    ``job_requirement`` whose own coordinates win over the hospital's.
    """
    if db is None:
        db = get_db()
    if path is None:
        path = Path(__file__).parent.parent / "sample_data.json"

    with open(path) as f:
        data = json.load(f)

    for application in data["applications"]:
        session_data = application.get("job_session")
        if not session_data:
            continue
        session = JobSession(**session_data)
        db.sessions.put(session.id, session)

        requirement = application.get("job_requirement") or {}
        hospital = requirement.get("hospital") or {}
        location = GeoPoint.from_mapping(requirement)
        if location is None:
            location = GeoPoint.from_mapping(hospital)
        if location is not None:
            db.locations.put(session.id, location)

    logger.info("Loaded %d sample sessions", len(db.sessions))
