"""
app/services/people_catalog.py — Great-person reference data
Loads data/great_people.json once, validates it and serves lookups by
position (daily selector index) and by id (progress updates).
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from app.config import get_settings
from app.core.errors import CatalogError, NoDataError, NotFoundError
from app.models import GreatPeopleFile, GreatPerson

settings = get_settings()

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def resolve_data_path(path_str: str) -> Path:
    """Relative paths are taken from the project root, not the working directory."""
    path = Path(path_str)
    return path if path.is_absolute() else PROJECT_ROOT / path


class PeopleCatalog:
    def __init__(self, data: GreatPeopleFile) -> None:
        self._data = data
        self._by_id: dict[str, GreatPerson] = {p.id: p for p in data.people}

    @classmethod
    def from_path(cls, path: Path) -> "PeopleCatalog":
        """Raise CatalogError if the file is missing, not JSON, or fails validation."""
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise CatalogError(f"Reference data file not found: {path}") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogError(f"Reference data file unreadable: {path}: {exc}") from exc
        try:
            data = GreatPeopleFile.model_validate(raw)
        except ValidationError as exc:
            raise CatalogError(f"Reference data failed validation: {exc}") from exc

        logger.info(f"Loaded {len(data.people)} great people from {path} (v{data.version}).")
        return cls(data)

    @classmethod
    def empty(cls) -> "PeopleCatalog":
        return cls(GreatPeopleFile())

    @property
    def people(self) -> list[GreatPerson]:
        return list(self._data.people)

    @property
    def count(self) -> int:
        return len(self._data.people)

    @property
    def version(self) -> str:
        return self._data.version

    @property
    def last_updated(self) -> Optional[str]:
        return self._data.last_updated

    def get(self, index: Optional[int]) -> GreatPerson:
        """Entry at a selector index. NoDataError for None, NotFoundError if out of range."""
        if index is None or self.count == 0:
            raise NoDataError()
        if not 0 <= index < self.count:
            raise NotFoundError(f"No great person at position {index}.")
        return self._data.people[index]

    def find(self, person_id: str) -> Optional[GreatPerson]:
        return self._by_id.get(person_id)

    def __contains__(self, person_id: str) -> bool:
        return person_id in self._by_id


@lru_cache()
def get_catalog() -> PeopleCatalog:
    """Cached catalog; an unreadable data file degrades to an empty catalog."""
    try:
        return PeopleCatalog.from_path(resolve_data_path(settings.people_data_path))
    except CatalogError as exc:
        logger.error(f"Great-person catalog unavailable: {exc}")
        return PeopleCatalog.empty()
