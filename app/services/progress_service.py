"""
app/services/progress_service.py — Per-user great-person viewing progress
Records which people a user has viewed (first view date per person) and
derives totals, weekly/monthly counts and completion percentage.

Records are kept in memory and, when a store path is configured, written
through to a JSON file after every mutation.
"""
from __future__ import annotations

import json
import threading
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Optional

from loguru import logger

from app.config import get_settings
from app.models import ProgressRecord, ProgressStoreFile, UserProgress
from app.services.people_catalog import get_catalog
from app.utils.timezone import get_month_start, get_week_start, utc_now
from app.utils.validators import parse_model_safe, safe_parse_json

settings = get_settings()


class ProgressService:
    def __init__(self, store_path: Optional[Path], total_people: int) -> None:
        self._store_path = Path(store_path) if store_path else None
        self._total_people = total_people
        self._lock = threading.Lock()
        self._data = self._load()

    # ── Persistence ───────────────────────────────────────────────────────────

    def _load(self) -> ProgressStoreFile:
        if self._store_path is None or not self._store_path.exists():
            return ProgressStoreFile()
        data = safe_parse_json(self._store_path.read_text(encoding="utf-8"))
        if data is None:
            logger.warning(f"Progress store {self._store_path} is not valid JSON. Starting empty.")
            return ProgressStoreFile()
        return parse_model_safe(ProgressStoreFile, data, str(self._store_path)) or ProgressStoreFile()

    def _save(self) -> None:
        if self._store_path is None:
            return
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._store_path.with_suffix(self._store_path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(self._data.model_dump(mode="json"), default=str, indent=2),
            encoding="utf-8",
        )
        tmp_path.replace(self._store_path)

    def _record(self, user_id: str) -> ProgressRecord:
        record = self._data.users.get(user_id)
        if record is None:
            record = ProgressRecord(user_id=user_id)
            self._data.users[user_id] = record
        return record

    # ── Queries ───────────────────────────────────────────────────────────────

    @property
    def total_people(self) -> int:
        return self._total_people

    def get_user_progress(self, user_id: str, today: date) -> UserProgress:
        with self._lock:
            record = self._data.users.get(user_id) or ProgressRecord(user_id=user_id)
            viewed = dict(record.viewed)

        week_start = get_week_start(today)
        month_start = get_month_start(today)
        total_viewed = len(viewed)
        percentage = (
            round(total_viewed / self._total_people * 100)
            if self._total_people > 0
            else 0
        )
        return UserProgress(
            user_id=user_id,
            total_viewed=total_viewed,
            total_people=self._total_people,
            progress_percentage=percentage,
            this_week_count=sum(1 for d in viewed.values() if week_start <= d <= today),
            this_month_count=sum(1 for d in viewed.values() if month_start <= d <= today),
            last_viewed_date=record.last_viewed_date,
            todays_person_id=record.todays_person_id,
            viewed_people_ids=list(viewed),
        )

    # ── Mutations ─────────────────────────────────────────────────────────────

    def record_person_view(self, user_id: str, person_id: str, view_date: date) -> bool:
        """
        Mark `person_id` as viewed. Returns True if this is a first view,
        False if the person was already viewed (record left untouched).
        """
        with self._lock:
            record = self._record(user_id)
            if person_id in record.viewed:
                return False
            record.viewed[person_id] = view_date
            record.last_viewed_date = view_date
            record.todays_person_id = person_id
            record.updated_at = utc_now()
            self._save()
            return True

    def set_todays_person(self, user_id: str, person_id: str, today: date) -> None:
        with self._lock:
            record = self._record(user_id)
            record.todays_person_id = person_id
            record.last_viewed_date = today
            record.updated_at = utc_now()
            self._save()

    def reset_user_progress(self, user_id: str) -> bool:
        with self._lock:
            if self._data.users.pop(user_id, None) is None:
                return False
            self._save()
            logger.info(f"Progress reset for user {user_id}.")
            return True


@lru_cache()
def get_progress_service() -> ProgressService:
    store_path = Path(settings.progress_store_path) if settings.progress_store_path else None
    return ProgressService(store_path, total_people=get_catalog().count)
