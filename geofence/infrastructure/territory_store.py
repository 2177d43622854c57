"""
Infrastructure layer: territory persistence over a key-value backend.
"""
import json
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol
import logging

from pydantic import TypeAdapter, ValidationError

from geofence.config import settings
from geofence.domain.errors import DuplicateTerritory, NotFound
from geofence.domain.models import Territory

logger = logging.getLogger(__name__)

TERRITORIES_STORAGE_KEY = "farmplanet_territories"

_territory_list = TypeAdapter(List[Territory])


class KeyValueBackend(Protocol):
    """Minimal string key-value storage the store writes through."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryBackend:
    """Process-local backend, used in tests and when no storage path is set."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JSONFileBackend:
    """
    Single JSON document on disk holding every key.

    Writes go to a temporary file first and are moved into place.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        tmp.replace(self.path)


TerritoryMutator = Callable[[Territory], Territory]


class TerritoryStore:
    """
    Owns the list of saved territories.

    Guarantees read-after-write consistency within the process: every
    mutation is visible to list() immediately and is written through to the
    backend. There is no background synchronisation.
    """

    def __init__(self, backend: Optional[KeyValueBackend] = None):
        self.backend = backend or InMemoryBackend()
        self._lock = threading.Lock()
        self._territories: Dict[str, Territory] = self._load()

    def _load(self) -> Dict[str, Territory]:
        try:
            raw = self.backend.get(TERRITORIES_STORAGE_KEY)
            if not raw:
                return {}
            territories = _territory_list.validate_json(raw)
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error loading territories, starting empty: {e}")
            return {}

        logger.info(f"Loaded {len(territories)} territories")
        return {t.id: t for t in territories}

    def _persist(self) -> None:
        payload = _territory_list.dump_json(list(self._territories.values()))
        self.backend.set(TERRITORIES_STORAGE_KEY, payload.decode("utf-8"))

    def list(self) -> List[Territory]:
        with self._lock:
            return list(self._territories.values())

    def get(self, territory_id: str) -> Territory:
        with self._lock:
            territory = self._territories.get(territory_id)
        if territory is None:
            logger.error(f"Territory lookup for unknown id {territory_id}")
            raise NotFound("Territory", territory_id)
        return territory

    def create(self, territory: Territory) -> Territory:
        with self._lock:
            if territory.id in self._territories:
                raise DuplicateTerritory(territory.id)
            self._territories[territory.id] = territory
            self._persist()
        logger.info(f"Created territory {territory.id} ({territory.name})")
        return territory

    def update(self, territory_id: str, mutator: TerritoryMutator) -> Territory:
        """
        Replace a territory with the mutator's result.

        Args:
            territory_id: Id of the territory to change
            mutator: Receives the current territory, returns its replacement

        Returns:
            The stored replacement

        Raises:
            NotFound: If the id is unknown
        """
        with self._lock:
            current = self._territories.get(territory_id)
            if current is None:
                logger.error(f"Update of unknown territory {territory_id}")
                raise NotFound("Territory", territory_id)
            updated = mutator(current)
            if updated.id != territory_id:
                raise ValueError("A territory mutator must not change the id")
            self._territories[territory_id] = updated
            self._persist()
        logger.debug(f"Updated territory {territory_id}")
        return updated

    def delete(self, territory_id: str) -> None:
        with self._lock:
            if territory_id not in self._territories:
                logger.error(f"Delete of unknown territory {territory_id}")
                raise NotFound("Territory", territory_id)
            del self._territories[territory_id]
            self._persist()
        logger.info(f"Deleted territory {territory_id}")


def build_backend() -> KeyValueBackend:
    """Backend selected by configuration."""
    if settings.territory_storage_path:
        return JSONFileBackend(settings.territory_storage_path)
    return InMemoryBackend()


# Singleton instance
_store: Optional[TerritoryStore] = None


def get_territory_store() -> TerritoryStore:
    """
    Get or create the singleton territory store.

    Returns:
        TerritoryStore instance
    """
    global _store
    if _store is None:
        _store = TerritoryStore(build_backend())
    return _store
