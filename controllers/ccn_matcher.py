"""
Matching of registry facilities to CMS Certification Numbers (CCN)

Names are compared by edit distance after dropping generic words
("health", "care", "center", ...). Only CMS providers in the facility's state
are considered; a matching city breaks ties between equal scores.
"""
import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping

from config.settings import CCN_MATCH_THRESHOLD, CCN_REVIEW_THRESHOLD, CCN_STOP_WORDS
from models.ccn_data import (
    CCN_LOW_CONFIDENCE,
    CCN_MATCHED,
    CCN_MULTIPLE,
    CCN_NO_MATCH,
    CcnCandidate,
    CcnMatchResult,
    CmsFacility,
)
from models.scorecard_data import CanonicalFacility
from utils.similarity import edit_similarity
from utils.text_utils import normalize_text
from utils.validation import cell_text

logger = logging.getLogger(__name__)

_STOP_WORDS = set(CCN_STOP_WORDS)

# Candidates listed for facilities needing review
MAX_REVIEW_CANDIDATES = 3


def ccn_name(name: Any) -> str:
    """Normalized name without generic words."""
    return ' '.join(token for token in normalize_text(name).split() if token not in _STOP_WORDS)


def ccn_similarity(name1: Any, name2: Any) -> int:
    n1 = ccn_name(name1)
    n2 = ccn_name(name2)
    if n1 == n2:
        # Two names made only of generic words say nothing about each other
        return 100 if n1 else 0
    return edit_similarity(n1, n2)


class CcnMatcher:
    """
    Matches canonical facilities against a CMS provider listing.

    Args:
        cms_facilities: CMS providers
        match_threshold: Minimum score of an automatic match
        review_threshold: Minimum score reported as a low confidence candidate
    """

    def __init__(
        self,
        cms_facilities: Iterable[CmsFacility],
        match_threshold: int = CCN_MATCH_THRESHOLD,
        review_threshold: int = CCN_REVIEW_THRESHOLD,
    ):
        self.match_threshold = match_threshold
        self.review_threshold = review_threshold

        self._by_state: Dict[str, List[CmsFacility]] = {}
        for cms in cms_facilities:
            state = (cms.state or '').strip().upper()
            self._by_state.setdefault(state, []).append(cms)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], **kwargs) -> 'CcnMatcher':
        """
        Build from listing records with ccn (or federal_provider_number),
        name (or facility_name), city and state. Records without a CCN are
        skipped.
        """
        facilities = []
        for record in records:
            ccn = cell_text(record.get('ccn') or record.get('federal_provider_number'))
            if not ccn:
                continue
            facilities.append(CmsFacility(
                ccn=ccn,
                name=cell_text(record.get('name') or record.get('facility_name')),
                city=cell_text(record.get('city')) or None,
                state=cell_text(record.get('state')) or None,
            ))
        logger.info(f"CMS listing loaded: {len(facilities)} providers")
        return cls(facilities, **kwargs)

    def match(self, facility: CanonicalFacility) -> CcnMatchResult:
        state = (facility.state or '').strip().upper()
        in_state = self._by_state.get(state, []) if state else []
        if not in_state:
            return CcnMatchResult(facility, CCN_NO_MATCH, reason="No facilities in state")

        city = (facility.city or '').strip().lower()
        scored = [
            CcnCandidate(
                cms=cms,
                score=ccn_similarity(facility.name, cms.name),
                city_match=bool(city) and (cms.city or '').strip().lower() == city,
            )
            for cms in in_state
        ]
        scored.sort(key=lambda c: (-c.score, not c.city_match))
        best = scored[0]

        if best.score >= self.match_threshold:
            good = [c for c in scored if c.score >= self.match_threshold]
            if len(good) > 1:
                return CcnMatchResult(facility, CCN_MULTIPLE, best=best,
                                      candidates=good[:MAX_REVIEW_CANDIDATES],
                                      reason="Multiple matches")
            return CcnMatchResult(facility, CCN_MATCHED, best=best, candidates=[best])

        if best.score >= self.review_threshold:
            return CcnMatchResult(facility, CCN_LOW_CONFIDENCE, best=best, candidates=[best],
                                  reason="Low confidence match")

        return CcnMatchResult(facility, CCN_NO_MATCH, reason="No similar facilities found")

    def match_all(self, facilities: Iterable[CanonicalFacility]) -> List[CcnMatchResult]:
        """
        Match every facility, in the given order.

        Returns:
            One CcnMatchResult per facility
        """
        results = [self.match(facility) for facility in facilities]

        summary = self.summarize(results)
        logger.info(
            f"CCN matching: {summary['matched']} matched, {summary['multiple']} multiple, "
            f"{summary['low_confidence']} low confidence, {summary['no_match']} no match"
        )
        return results

    @staticmethod
    def summarize(results: List[CcnMatchResult]) -> Dict[str, Any]:
        counts = Counter(result.status for result in results)
        return {
            'total': len(results),
            'matched': counts[CCN_MATCHED],
            'multiple': counts[CCN_MULTIPLE],
            'low_confidence': counts[CCN_LOW_CONFIDENCE],
            'no_match': counts[CCN_NO_MATCH],
        }
