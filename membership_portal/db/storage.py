"""
Durable key/value storage surfaces.

Both surfaces mirror the browser's localStorage contract: string keys, string
values, and a byte quota whose overflow is reported as a StorageError.
"""
from typing import Callable, Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from membership_portal.core.errors import StorageError
from membership_portal.db import session as db_session
from membership_portal.db.models import StoredItem


def _check_quota(key: str, value: str, quota_bytes: Optional[int]):
    if quota_bytes is None:
        return
    size = len(key.encode("utf-8")) + len(value.encode("utf-8"))
    if size > quota_bytes:
        raise StorageError(f"Storage quota exceeded: {size} bytes > {quota_bytes} bytes")


class MemoryStorage:
    """Dict-backed storage. Lives only as long as the process."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        _check_quota(key, value, self.quota_bytes)
        self._items[key] = value

    def remove_item(self, key: str):
        self._items.pop(key, None)


class SqlStorage:
    """Storage backed by the `stored_items` table."""

    def __init__(self, session_factory: Callable = None, quota_bytes: Optional[int] = None):
        self._session_factory = session_factory
        self.quota_bytes = quota_bytes

    def _session(self):
        # Resolved per call so init_db() rebinding is picked up
        factory = self._session_factory or db_session.SessionLocal
        return factory()

    def get_item(self, key: str) -> Optional[str]:
        db = self._session()
        try:
            item = db.get(StoredItem, key)
            return item.value if item else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e
        finally:
            db.close()

    def set_item(self, key: str, value: str):
        _check_quota(key, value, self.quota_bytes)
        db = self._session()
        try:
            db.merge(StoredItem(key=key, value=value))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to write '{key}': {e}") from e
        finally:
            db.close()

    def remove_item(self, key: str):
        db = self._session()
        try:
            db.query(StoredItem).filter(StoredItem.key == key).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to remove '{key}': {e}") from e
        finally:
            db.close()
