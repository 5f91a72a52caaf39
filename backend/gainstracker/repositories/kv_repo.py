# gainstracker/repositories/kv_repo.py
"""
Durable string-keyed stores for the active-session draft.

``KeyValueRepository`` is the plain SQLAlchemy repository over ``kv_entries``.
``SqlKeyValueStore`` binds it to one scope (a user profile) and a session
factory so the draft manager can read and write without a request-scoped
session. ``MemoryKeyValueStore`` keeps everything in a dict.

Both stores raise ``PersistenceUnavailable`` when the backend fails.
"""
from __future__ import annotations
from typing import Callable, Iterable, Mapping, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gainstracker.errors import PersistenceUnavailable
from gainstracker.models import KeyValueEntry


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set_many(self, items: Mapping[str, str]) -> None: ...
    def remove_many(self, keys: Iterable[str]) -> None: ...


class KeyValueRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, scope: str, key: str) -> Optional[str]:
        entry = self.db.get(KeyValueEntry, (scope, key))
        return entry.value if entry else None

    def list_keys(self, scope: str) -> list[str]:
        stmt = select(KeyValueEntry.key).where(KeyValueEntry.scope == scope).order_by(KeyValueEntry.key)
        return list(self.db.execute(stmt).scalars().all())

    def put(self, scope: str, key: str, value: str) -> None:
        entry = self.db.get(KeyValueEntry, (scope, key))
        if entry is None:
            self.db.add(KeyValueEntry(scope=scope, key=key, value=value))
        else:
            entry.value = value

    def delete(self, scope: str, keys: Iterable[str]) -> int:
        keys = list(keys)
        if not keys:
            return 0
        stmt = delete(KeyValueEntry).where(KeyValueEntry.scope == scope, KeyValueEntry.key.in_(keys))
        return self.db.execute(stmt).rowcount


class SqlKeyValueStore:
    """Scoped store; every write batch is one transaction."""

    def __init__(self, session_factory: Callable[[], Session], scope: str):
        self.session_factory = session_factory
        self.scope = scope

    def get(self, key: str) -> Optional[str]:
        try:
            with self.session_factory() as db:
                return KeyValueRepository(db).get(self.scope, key)
        except SQLAlchemyError as e:
            raise PersistenceUnavailable(f"read {self.scope}/{key} failed: {e}") from e

    def set_many(self, items: Mapping[str, str]) -> None:
        try:
            with self.session_factory() as db:
                repo = KeyValueRepository(db)
                for key, value in items.items():
                    repo.put(self.scope, key, value)
                db.commit()
        except SQLAlchemyError as e:
            raise PersistenceUnavailable(f"write to {self.scope} failed: {e}") from e

    def remove_many(self, keys: Iterable[str]) -> None:
        try:
            with self.session_factory() as db:
                KeyValueRepository(db).delete(self.scope, keys)
                db.commit()
        except SQLAlchemyError as e:
            raise PersistenceUnavailable(f"delete from {self.scope} failed: {e}") from e


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_many(self, items: Mapping[str, str]) -> None:
        self.data.update(items)

    def remove_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)
