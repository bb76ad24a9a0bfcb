"""
Read-only reference snapshots shared by every row of a batch
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from config.settings import NORMALIZATION_VERSION

from .errors import CatalogLoadError, RegistryLoadError
from .inputs import CriteriaCatalogInput, FacilityInput
from .scorecard_data import CanonicalFacility, CriteriaItem
from utils.text_utils import core_name, normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    """Registry facility with its precomputed comparison keys."""
    facility: CanonicalFacility
    normalized: str
    core: str


def _id_sort_key(facility_id: Any) -> Tuple[int, Any]:
    # Numeric ids sort numerically, everything else as text after them
    if isinstance(facility_id, bool):
        return (1, str(facility_id))
    if isinstance(facility_id, (int, float)):
        return (0, facility_id)
    text = str(facility_id)
    if text.isdigit():
        return (0, int(text))
    return (1, text)


class FacilityRegistry:
    """
    Immutable snapshot of the canonical facility registry.

    Entries are kept sorted by id, so iteration order is deterministic and
    ties can be broken by the lowest id.
    """

    def __init__(self, facilities: Iterable[CanonicalFacility]):
        entries = [
            RegistryEntry(
                facility=facility,
                normalized=normalize_text(facility.name),
                core=core_name(facility.name),
            )
            for facility in facilities
        ]
        entries.sort(key=lambda entry: _id_sort_key(entry.facility.id))
        self._entries: Tuple[RegistryEntry, ...] = tuple(entries)
        self._by_id: Dict[Any, CanonicalFacility] = {
            entry.facility.id: entry.facility for entry in self._entries
        }

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> 'FacilityRegistry':
        """
        Build the registry from provider records ({id, name, state?, city?}).

        Raises:
            RegistryLoadError: If a record is malformed or an id is repeated
        """
        facilities = []
        seen = set()
        for index, record in enumerate(records):
            try:
                item = FacilityInput.model_validate(dict(record))
            except (ValidationError, TypeError, ValueError) as e:
                raise RegistryLoadError(f"Invalid registry record #{index + 1}: {e}") from e
            if item.id in seen:
                raise RegistryLoadError(f"Duplicate facility id in registry: {item.id}")
            seen.add(item.id)
            facilities.append(CanonicalFacility(id=item.id, name=item.name,
                                                state=item.state, city=item.city))

        logger.info(
            f"Facility registry loaded: {len(facilities)} facilities "
            f"(name normalization v{NORMALIZATION_VERSION})"
        )
        return cls(facilities)

    @property
    def entries(self) -> Tuple[RegistryEntry, ...]:
        return self._entries

    def get(self, facility_id: Any) -> Optional[CanonicalFacility]:
        return self._by_id.get(facility_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return (entry.facility for entry in self._entries)


class CriteriaCatalog:
    """
    Immutable snapshot of the audit criteria, one ordered item list per system.
    """

    def __init__(self, systems: Mapping[int, Tuple[str, Iterable[CriteriaItem]]]):
        self._systems: Dict[int, Tuple[str, Tuple[CriteriaItem, ...]]] = {
            int(number): (name, tuple(items))
            for number, (name, items) in sorted(systems.items())
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'CriteriaCatalog':
        """
        Build the catalog from its YAML/JSON representation.

        Args:
            data: {"version": 1, "systems": [{"system_number", "name", "items": [...]}]}

        Raises:
            CatalogLoadError: If the structure is invalid
        """
        try:
            parsed = CriteriaCatalogInput.model_validate(data)
        except (ValidationError, TypeError) as e:
            raise CatalogLoadError(f"Invalid criteria catalog: {e}") from e

        systems = {}
        for system in parsed.systems:
            if system.system_number in systems:
                raise CatalogLoadError(f"System {system.system_number} defined twice in catalog")
            items = [
                CriteriaItem(
                    system_number=system.system_number,
                    item_number=item.number,
                    text=item.text,
                    max_points=item.max_points,
                    sample_size=item.sample_size,
                    multiplier=item.multiplier,
                    input_type=item.input_type,
                )
                for item in system.items
            ]
            systems[system.system_number] = (system.name, items)

        catalog = cls(systems)
        logger.info(
            f"Criteria catalog loaded: {len(systems)} systems, "
            f"{catalog.item_count()} items"
        )
        return catalog

    def system_numbers(self) -> List[int]:
        return list(self._systems)

    def system_name(self, system_number: int) -> Optional[str]:
        entry = self._systems.get(system_number)
        return entry[0] if entry else None

    def items(self, system_number: int) -> Tuple[CriteriaItem, ...]:
        entry = self._systems.get(system_number)
        return entry[1] if entry else ()

    def item_count(self, system_number: Optional[int] = None) -> int:
        if system_number is not None:
            return len(self.items(system_number))
        return sum(len(items) for _, items in self._systems.values())

    def systems(self) -> Dict[int, Tuple[str, Tuple[CriteriaItem, ...]]]:
        return dict(self._systems)

    def __contains__(self, system_number: int) -> bool:
        return system_number in self._systems
