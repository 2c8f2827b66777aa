"""
Refund Manager - retracts optional skill selections made redundant by fixed grants
"""

from typing import List, Optional
from loguru import logger
import time

from ..events import EventType, ProficiencyRefundedEvent
from ..proficiency_constants import ORIGINS
from ..utils.normalization import find_matching, normalize_for_lookup
from .optional_proficiency_manager import choice_source
from .proficiency_manager import is_choice_source

# Nominal origin of a fixed source tag; tags not listed belong to no origin
SOURCE_ORIGINS = {
    'race': 'race',
    'subrace': 'race',
    'class': 'class',
    'subclass': 'class',
    'background': 'background',
    'background variant': 'background',
}


def origin_for_source(source: str) -> Optional[str]:
    return SOURCE_ORIGINS.get(normalize_for_lookup(source))


class RefundManager:
    """Frees optional-choice slots when the chosen name becomes a fixed grant"""

    def __init__(self, character_manager):
        self.character_manager = character_manager

    def reconcile(self, prof_type: str, name: str, source: str) -> List[str]:
        """
        Refund selections of name in every origin other than source's own

        Args:
            prof_type: Proficiency type of the fixed grant
            name: Granted proficiency name
            source: Fixed source tag that granted it

        Returns:
            Origins whose selection was refunded
        """
        if is_choice_source(source):
            return []
        optional_set = self.character_manager.state.optional_proficiencies.get(prof_type)
        if optional_set is None:
            return []

        own_origin = origin_for_source(source)
        proficiency_manager = self.character_manager.get_manager('proficiency')
        refunded = []
        for origin in ORIGINS:
            if origin == own_origin:
                continue
            pool = optional_set.pools[origin]
            selected = find_matching(pool.selected, name)
            if selected is None:
                continue
            pool.selected.remove(selected)
            proficiency_manager.remove_proficiency_from_source(prof_type, selected, choice_source(origin))
            refunded.append(origin)
            logger.info(f"Refunded {origin} {prof_type} choice '{selected}' now granted by {source}")

        if refunded:
            self.character_manager.get_manager('optional_proficiency').recombine(prof_type)
            event = ProficiencyRefundedEvent(
                event_type=EventType.PROFICIENCY_REFUNDED,
                source_manager='refund',
                timestamp=time.time(),
                prof_type=prof_type,
                proficiency=name,
                origins=refunded
            )
            self.character_manager.emit(event)
        return refunded
