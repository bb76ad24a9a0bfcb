"""
Models for matching registry facilities to the CMS provider listing
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .scorecard_data import CanonicalFacility

CCN_MATCHED = "matched"
CCN_MULTIPLE = "multiple"
CCN_LOW_CONFIDENCE = "low_confidence"
CCN_NO_MATCH = "no_match"


@dataclass(frozen=True)
class CmsFacility:
    """A provider of the CMS listing."""
    ccn: str
    name: str
    city: Optional[str] = None
    state: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ccn': self.ccn,
            'name': self.name,
            'city': self.city,
            'state': self.state,
        }


@dataclass(frozen=True)
class CcnCandidate:
    cms: CmsFacility
    score: int
    city_match: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = self.cms.to_dict()
        result['score'] = self.score
        result['city_match'] = self.city_match
        return result


@dataclass
class CcnMatchResult:
    facility: CanonicalFacility
    status: str
    best: Optional[CcnCandidate] = None
    candidates: List[CcnCandidate] = field(default_factory=list)
    reason: str = ""

    @property
    def ccn(self) -> Optional[str]:
        if self.status == CCN_MATCHED and self.best is not None:
            return self.best.cms.ccn
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'facility_id': self.facility.id,
            'facility_name': self.facility.name,
            'facility_city': self.facility.city,
            'facility_state': self.facility.state,
            'status': self.status,
            'ccn': self.ccn,
            'cms_name': self.best.cms.name if self.best else None,
            'cms_city': self.best.cms.city if self.best else None,
            'score': self.best.score if self.best else None,
            'candidates': [candidate.to_dict() for candidate in self.candidates],
            'reason': self.reason,
        }
