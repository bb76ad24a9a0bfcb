"""
Mapping of spreadsheet row labels onto catalog criteria items
"""
import logging
from dataclasses import dataclass
from typing import Optional

from models.inputs import MatchingConfig
from models.reference_data import CriteriaCatalog
from models.scorecard_data import (
    MATCH_POSITION,
    MATCH_SEQUENCE,
    MATCH_SIMILARITY,
    CriteriaItem,
)
from utils.similarity import TOKEN_MODE_JACCARD, token_overlap
from utils.text_utils import normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemMatch:
    """Best catalog item for a label and its similarity."""
    item: Optional[CriteriaItem]
    confidence: float


@dataclass(frozen=True)
class ItemResolution:
    """
    Item number assigned to a row.

    `matched_item` is only set when the label matched with enough
    confidence; `confidence` is always the best similarity found.
    """
    item_number: str
    matched_item: Optional[CriteriaItem]
    confidence: float
    method: str
    catalog_item: Optional[CriteriaItem] = None

    @property
    def low_confidence(self) -> bool:
        return self.method != MATCH_SIMILARITY


class ItemMatcher:

    def __init__(self, catalog: CriteriaCatalog, config: Optional[MatchingConfig] = None):
        self.catalog = catalog
        self.config = config or MatchingConfig()

    def match(self, category_text: str, system_number: int) -> ItemMatch:
        """
        Find the catalog item of a system most similar to a row label.

        Uses Jaccard token overlap; on ties the first item in catalog order
        wins.

        Args:
            category_text: Row label from the sheet
            system_number: System the row belongs to

        Returns:
            ItemMatch (item is None when nothing overlaps)
        """
        label = normalize_text(category_text)

        best_item = None
        best_score = 0.0
        for item in self.catalog.items(system_number):
            score = token_overlap(label, normalize_text(item.text), mode=TOKEN_MODE_JACCARD)
            if score > best_score:
                best_item = item
                best_score = score

        return ItemMatch(item=best_item, confidence=best_score)

    def resolve(self, category_text: str, system_number: int, position: int) -> ItemResolution:
        """
        Assign an item number to the row at `position` of a system sheet.

        Confident matches use the matched item. Otherwise the item at the
        same position of the catalog is assumed, or the ordinal position + 1
        when the catalog has fewer items.
        """
        found = self.match(category_text, system_number)

        if found.item is not None and found.confidence >= self.config.item_confidence_threshold:
            return ItemResolution(
                item_number=found.item.item_number,
                matched_item=found.item,
                confidence=found.confidence,
                method=MATCH_SIMILARITY,
                catalog_item=found.item,
            )

        items = self.catalog.items(system_number)
        if 0 <= position < len(items):
            fallback = items[position]
            logger.debug(
                f"System {system_number}: '{category_text}' matched by position "
                f"to item {fallback.item_number} (confidence {found.confidence:.2f})"
            )
            return ItemResolution(
                item_number=fallback.item_number,
                matched_item=None,
                confidence=found.confidence,
                method=MATCH_POSITION,
                catalog_item=fallback,
            )

        return ItemResolution(
            item_number=str(position + 1),
            matched_item=None,
            confidence=found.confidence,
            method=MATCH_SEQUENCE,
        )
