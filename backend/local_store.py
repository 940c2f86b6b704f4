"""
Key/value store that stands in for the browser's localStorage.

The kiosk keeps its mirror here so it can come back after a restart with
stale data; the admin's work settings live here too.
"""
import json
import logging
from datetime import datetime
from typing import Any

from models import StoredValue
from schemas import WorkSettings

logger = logging.getLogger("relay_logger")

WORK_SETTINGS_KEY = "workSettings"


class LocalStore:
    """JSON values keyed by string, backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get(self, key: str, default: Any = None) -> Any:
        db = self.session_factory()
        try:
            row = db.query(StoredValue).filter(StoredValue.key == key).first()
            if row is None:
                return default
            try:
                return json.loads(row.value)
            except ValueError:
                logger.warning(f"Stored value for {key!r} is not valid JSON, ignoring it")
                return default
        finally:
            db.close()

    def set(self, key: str, value: Any) -> None:
        db = self.session_factory()
        try:
            row = db.query(StoredValue).filter(StoredValue.key == key).first()
            if row is None:
                row = StoredValue(key=key)
                db.add(row)
            row.value = json.dumps(value)
            row.updated_at = datetime.utcnow()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def remove(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.query(StoredValue).filter(StoredValue.key == key).delete()
            db.commit()
        finally:
            db.close()


def load_work_settings(store: LocalStore) -> WorkSettings:
    """Read saved work settings, falling back to the defaults."""
    stored = store.get(WORK_SETTINGS_KEY)
    if not stored:
        return WorkSettings()
    try:
        return WorkSettings.model_validate(stored)
    except ValueError as e:
        logger.warning(f"Saved work settings are invalid, using defaults: {e}")
        return WorkSettings()


def save_work_settings(store: LocalStore, settings: WorkSettings) -> None:
    store.set(WORK_SETTINGS_KEY, settings.to_wire())
