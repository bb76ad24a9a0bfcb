"""
Resolution of free-text facility names against the canonical registry
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from models.errors import AmbiguousMatchError, FacilityNotFoundError
from models.inputs import MatchingConfig
from models.reference_data import FacilityRegistry, RegistryEntry
from models.scorecard_data import MatchCandidate
from utils.similarity import TOKEN_MODE_MIN, token_overlap
from utils.text_utils import core_name, normalize_text

logger = logging.getLogger(__name__)

# Tier ranks, higher wins
TIER_EXACT = 3
TIER_CORE_EXACT = 2
TIER_FUZZY = 1

EXACT_SCORE = 1.0
CORE_EXACT_SCORE = 0.95
FUZZY_SCORE_CAP = 0.9


@dataclass(frozen=True)
class ScoredFacility:
    tier: int
    score: float
    method: str
    entry: RegistryEntry


@dataclass
class Resolution:
    """Outcome of a resolution: the winner plus any near-tie competitors."""
    candidate: MatchCandidate
    competitors: List[MatchCandidate]

    @property
    def is_ambiguous(self) -> bool:
        return bool(self.competitors)


class FacilityResolver:
    """
    Matches raw facility names to registry entries.

    Every registry entry is scored. The winner is the entry with the highest
    tier, then the highest score, then the lowest id:

        1. normalized names equal                      -> 1.0
        2. core names equal (core length >= 4)          -> 0.95
        3. core containment or core token overlap       -> <= 0.9
    """

    def __init__(self, registry: FacilityRegistry, config: Optional[MatchingConfig] = None):
        self.registry = registry
        self.config = config or MatchingConfig()

    def resolve(self, raw_name: Any) -> MatchCandidate:
        """
        Resolve a raw name to its best registry match.

        Args:
            raw_name: Facility name as written in the source

        Returns:
            Best MatchCandidate

        Raises:
            FacilityNotFoundError: No entry reaches the acceptance threshold
            AmbiguousMatchError: Near tie while strict_ambiguity is enabled
        """
        return self.resolve_detailed(raw_name).candidate

    def resolve_detailed(self, raw_name: Any) -> Resolution:
        """
        Resolve a raw name, keeping the competitors of an ambiguous match.

        Ambiguity raises only when strict_ambiguity is enabled; otherwise the
        competitors are returned for the caller to report.
        """
        normalized = normalize_text(raw_name)
        if not normalized:
            raise FacilityNotFoundError(raw_name)

        core = core_name(raw_name)

        scored = []
        for entry in self.registry.entries:
            result = self._score_entry(normalized, core, entry)
            if result and result.score >= self.config.facility_threshold:
                scored.append(result)

        if not scored:
            logger.debug(f"No registry match for '{raw_name}'")
            raise FacilityNotFoundError(raw_name)

        # Registry entries are sorted by id and sort() is stable, so equal
        # (tier, score) pairs keep the lowest id first
        scored.sort(key=lambda s: (-s.tier, -s.score))
        best = scored[0]

        competitors = [
            self._to_candidate(other)
            for other in scored[1:]
            if other.tier == best.tier
            and best.score - other.score <= self.config.ambiguity_margin
        ]

        winner = self._to_candidate(best)
        if competitors:
            names = ', '.join(c.target_name for c in competitors)
            logger.info(f"Ambiguous facility name '{raw_name}': {winner.target_name} vs {names}")
            if self.config.strict_ambiguity:
                raise AmbiguousMatchError(raw_name, [winner] + competitors)

        return Resolution(candidate=winner, competitors=competitors)

    def _score_entry(self, normalized: str, core: str,
                     entry: RegistryEntry) -> Optional[ScoredFacility]:
        if normalized == entry.normalized:
            return ScoredFacility(TIER_EXACT, EXACT_SCORE, "exact", entry)

        min_core = self.config.min_core_length
        if core and core == entry.core and len(core) >= min_core:
            return ScoredFacility(TIER_CORE_EXACT, CORE_EXACT_SCORE, "core_exact", entry)

        score, method = self._fuzzy_score(core, entry.core)
        if score <= 0:
            return None
        return ScoredFacility(TIER_FUZZY, min(score, FUZZY_SCORE_CAP), method, entry)

    def _fuzzy_score(self, core: str, registry_core: str) -> Tuple[float, str]:
        if not core or not registry_core:
            return 0.0, ""

        score = 0.0
        method = ""
        min_core = self.config.min_core_length

        if core in registry_core and len(core) >= min_core:
            score = 0.8 + (len(core) / len(registry_core)) * 0.1
            method = "containment"
        elif registry_core in core and len(registry_core) >= min_core:
            score = 0.7 + (len(registry_core) / len(core)) * 0.1
            method = "containment"

        overlap = token_overlap(core, registry_core, mode=TOKEN_MODE_MIN)
        if overlap >= 0.5 and overlap > score:
            score = overlap
            method = "token_overlap"

        return score, method

    @staticmethod
    def _to_candidate(scored: ScoredFacility) -> MatchCandidate:
        facility = scored.entry.facility
        return MatchCandidate(
            target_id=facility.id,
            target_name=facility.name,
            score=round(scored.score, 4),
            method=scored.method,
        )
