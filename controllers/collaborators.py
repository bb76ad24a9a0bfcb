"""
Boundaries to the facility registry, the criteria catalog and persistence

The import core only talks to these interfaces. File-backed implementations
are provided for the command line tool and for tests.
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from config.settings import DEFAULT_CATALOG_PATH
from models.errors import PersistenceError
from models.reference_data import CriteriaCatalog
from models.scorecard_data import ParsedScorecard
from utils.input_loader import load_catalog, load_json

logger = logging.getLogger(__name__)

Key = Tuple[Any, int, int]


class FacilityRegistryProvider(ABC):

    @abstractmethod
    def list(self) -> List[Dict[str, Any]]:
        """Return every registered facility as {id, name, state?, city?}."""


class CriteriaCatalogProvider(ABC):

    @abstractmethod
    def catalog(self) -> CriteriaCatalog:
        """Return the criteria catalog snapshot."""


class ScorecardPersistence(ABC):

    @abstractmethod
    def existing_keys(self) -> Set[Key]:
        """(facility_id, year, month) of every persisted scorecard."""

    @abstractmethod
    def commit(self, scorecards: List[ParsedScorecard]) -> None:
        """
        Persist all scorecards in one transaction.

        Raises:
            PersistenceError: Nothing was written
        """


class InMemoryFacilityRegistryProvider(FacilityRegistryProvider):

    def __init__(self, facilities: Iterable[Dict[str, Any]]):
        self._facilities = [dict(facility) for facility in facilities]

    def list(self) -> List[Dict[str, Any]]:
        return [dict(facility) for facility in self._facilities]


class JsonFacilityRegistryProvider(FacilityRegistryProvider):
    """
    Registry read from a JSON file holding a list of facilities or
    {"facilities": [...]}. The file is read again on every call.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def list(self) -> List[Dict[str, Any]]:
        data = load_json(self.path)
        if isinstance(data, dict):
            data = data.get("facilities", [])
        return list(data)


class YamlCriteriaCatalogProvider(CriteriaCatalogProvider):

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else DEFAULT_CATALOG_PATH

    def catalog(self) -> CriteriaCatalog:
        return load_catalog(self.path)


class StaticCriteriaCatalogProvider(CriteriaCatalogProvider):

    def __init__(self, catalog: CriteriaCatalog):
        self._catalog = catalog

    def catalog(self) -> CriteriaCatalog:
        return self._catalog


class JsonScorecardStore(ScorecardPersistence):
    """
    Scorecards kept in a single JSON file.

    A commit writes a temporary file next to the store and replaces the
    store with it, so a failed commit leaves the previous content intact.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            data = load_json(self.path)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read scorecard store {self.path}: {e}") from e
        return data.get("scorecards", []) if isinstance(data, dict) else list(data)

    def existing_keys(self) -> Set[Key]:
        keys = set()
        for record in self._read():
            keys.add((record.get("facility_id"), int(record["year"]), int(record["month"])))
        return keys

    def commit(self, scorecards: List[ParsedScorecard]) -> None:
        records = self._read()
        imported_at = datetime.now().isoformat(timespec="seconds")
        for scorecard in scorecards:
            record = scorecard.to_dict()
            record["imported_at"] = imported_at
            records.append(record)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".scorecards-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"scorecards": records}, f, ensure_ascii=False, indent=2, default=str)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise PersistenceError(f"Could not write scorecard store {self.path}: {e}") from e

        logger.info(f"Committed {len(scorecards)} scorecards to {self.path}")
