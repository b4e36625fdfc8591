"""
Key-value store abstraction with in-memory, SQL and Redis implementations.

Every entity is stored as a JSON document under a ``"<kind>:<id>"`` key.
There are no secondary indexes: listing a kind is a prefix scan.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions
from sqlalchemy import JSON, Column, Integer, String, create_engine, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)


class KvConflictError(Exception):
    """Raised when a compare-and-swap update keeps losing the race."""

    def __init__(self, key: str, attempts: int):
        super().__init__(f"Concurrent update conflict on {key} after {attempts} attempts")
        self.key = key
        self.attempts = attempts


@dataclass
class KvEntry:
    key: str
    value: Any


class KvStore(Protocol):
    """Interface for the key-value persistence layer."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def get_by_prefix(self, prefix: str) -> list[KvEntry]:
        ...

    def get_versioned(self, key: str) -> tuple[Optional[Any], Optional[Any]]:
        """Return ``(value, version)``; both are None for an absent key."""
        ...

    def compare_and_set(
        self, key: str, value: Any, expected_version: Optional[Any]
    ) -> bool:
        """Write ``value`` only if the stored version is still ``expected_version``."""
        ...


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str)


def update_with_retry(
    store: KvStore,
    key: str,
    mutate: Callable[[dict], dict],
    *,
    attempts: int = 10,
) -> Optional[dict]:
    """
    Apply ``mutate`` to the record at ``key`` with a compare-and-swap loop.

    ``mutate`` receives a private copy of the current record and returns the
    new one. Returns the stored record, or None if the key does not exist.
    Raises KvConflictError when every attempt lost the race.
    """
    for attempt in range(1, attempts + 1):
        current, version = store.get_versioned(key)
        if current is None:
            return None
        updated = mutate(current)
        if store.compare_and_set(key, updated, version):
            return updated
        logger.info("Lost update race on %s (attempt %d/%d)", key, attempt, attempts)
    raise KvConflictError(key, attempts)


class InMemoryKvStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        # key -> (serialized value, version)
        self.entries: Dict[str, tuple[str, int]] = {}
        self._lock = threading.Lock()
        self._clock = 0

    def _next_version(self) -> int:
        self._clock += 1
        return self._clock

    def get(self, key: str) -> Optional[Any]:
        value, _ = self.get_versioned(key)
        return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self.entries[key] = (_dumps(value), self._next_version())

    def delete(self, key: str) -> None:
        with self._lock:
            self.entries.pop(key, None)

    def get_by_prefix(self, prefix: str) -> list[KvEntry]:
        with self._lock:
            items = [
                (key, raw)
                for key, (raw, _) in self.entries.items()
                if key.startswith(prefix)
            ]
        return [KvEntry(key, json.loads(raw)) for key, raw in sorted(items)]

    def get_versioned(self, key: str) -> tuple[Optional[Any], Optional[int]]:
        with self._lock:
            stored = self.entries.get(key)
        if stored is None:
            return None, None
        raw, version = stored
        return json.loads(raw), version

    def compare_and_set(
        self, key: str, value: Any, expected_version: Optional[int]
    ) -> bool:
        with self._lock:
            stored = self.entries.get(key)
            current_version = stored[1] if stored else None
            if current_version != expected_version:
                return False
            self.entries[key] = (_dumps(value), self._next_version())
            return True

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.entries.clear()


class SqlKvStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlKvStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def get(self, key: str) -> Optional[Any]:
        with self.Session() as session:
            row = session.get(KvRow, key)
            return row.value if row else None

    def set(self, key: str, value: Any) -> None:
        payload = json.loads(_dumps(value))
        with self.Session() as session:
            row = session.get(KvRow, key)
            if row:
                row.value = payload
                row.version = row.version + 1
            else:
                session.add(KvRow(key=key, value=payload, version=1))
            session.commit()

    def delete(self, key: str) -> None:
        with self.Session() as session:
            session.execute(delete(KvRow).where(KvRow.key == key))
            session.commit()

    def get_by_prefix(self, prefix: str) -> list[KvEntry]:
        with self.Session() as session:
            stmt = (
                select(KvRow)
                .where(KvRow.key.startswith(prefix, autoescape=True))
                .order_by(KvRow.key.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [KvEntry(row.key, row.value) for row in rows]

    def get_versioned(self, key: str) -> tuple[Optional[Any], Optional[int]]:
        with self.Session() as session:
            row = session.get(KvRow, key)
            if not row:
                return None, None
            return row.value, row.version

    def compare_and_set(
        self, key: str, value: Any, expected_version: Optional[int]
    ) -> bool:
        payload = json.loads(_dumps(value))
        with self.Session() as session:
            if expected_version is None:
                session.add(KvRow(key=key, value=payload, version=1))
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    return False
                return True
            result = session.execute(
                update(KvRow)
                .where(KvRow.key == key, KvRow.version == expected_version)
                .values(value=payload, version=expected_version + 1)
            )
            session.commit()
            return result.rowcount == 1


_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


@dataclass
class RedisKvStore:
    """Redis-backed store keeping JSON strings under a namespace prefix."""

    url: str
    key_prefix: str = "alumni-portal:"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        raw = self.client.get(self._key(key))
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self.client.set(self._key(key), _dumps(value))

    def delete(self, key: str) -> None:
        self.client.delete(self._key(key))

    def get_by_prefix(self, prefix: str) -> list[KvEntry]:
        pattern = _GLOB_SPECIAL.sub(r"\\\1", self._key(prefix)) + "*"
        keys = sorted(self.client.scan_iter(match=pattern))
        if not keys:
            return []
        entries: list[KvEntry] = []
        for raw_key, raw in zip(keys, self.client.mget(keys)):
            # Deleted between SCAN and MGET.
            if raw is None:
                continue
            key = raw_key.decode("utf-8")[len(self.key_prefix):]
            entries.append(KvEntry(key, json.loads(raw)))
        return entries

    def get_versioned(self, key: str) -> tuple[Optional[Any], Optional[bytes]]:
        # The raw stored bytes double as the version token.
        raw = self.client.get(self._key(key))
        if raw is None:
            return None, None
        return json.loads(raw), raw

    def compare_and_set(
        self, key: str, value: Any, expected_version: Optional[bytes]
    ) -> bool:
        full_key = self._key(key)
        with self.client.pipeline() as pipe:
            try:
                pipe.watch(full_key)
                if pipe.get(full_key) != expected_version:
                    pipe.unwatch()
                    return False
                pipe.multi()
                pipe.set(full_key, _dumps(value))
                pipe.execute()
                return True
            except redis_exceptions.WatchError:
                return False


Base = declarative_base()


class KvRow(Base):
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)
