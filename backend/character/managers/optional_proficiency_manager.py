"""
Optional Proficiency Manager - per-origin choice pools and their combined view
Selections are granted through the proficiency ledger as '<Origin> Choice'
"""

from typing import Dict, List, Optional, Any
from loguru import logger
import time

from ..events import EventType, OptionalProficiencyEvent
from ..exceptions import UninitializedProficiencyTypeError
from ..proficiency_constants import ORIGINS
from ..utils.normalization import find_matching, unique_names


def choice_source(origin: str) -> str:
    """'race' -> 'Race Choice'"""
    return f"{origin.capitalize()} Choice"


class OptionalProficiencyManager:
    """Manages optional proficiency pools for skills, languages and tools"""

    def __init__(self, character_manager):
        """
        Initialize the OptionalProficiencyManager

        Args:
            character_manager: Reference to parent CharacterManager
        """
        self.character_manager = character_manager

    @property
    def state(self):
        return self.character_manager.state

    @property
    def proficiency_manager(self):
        return self.character_manager.get_manager('proficiency')

    def _require_set(self, prof_type: str):
        optional_set = self.state.optional_proficiencies.get(prof_type)
        if optional_set is None:
            raise UninitializedProficiencyTypeError(prof_type)
        return optional_set

    def _get_pool(self, prof_type: str, origin: str):
        """Pool for type and origin; None (with a warning) for an unknown origin"""
        optional_set = self._require_set(prof_type)
        pool = optional_set.pool(origin)
        if pool is None:
            logger.warning(f"Unknown origin '{origin}' for {prof_type} pool")
        return pool

    def _emit(self, prof_type: str, origin: str, action: str,
              proficiency: Optional[str] = None, allowed: Optional[int] = None):
        event = OptionalProficiencyEvent(
            event_type=EventType.OPTIONAL_CONFIGURED,  # Set from action in __post_init__
            source_manager='optional_proficiency',
            timestamp=time.time(),
            prof_type=prof_type,
            origin=origin,
            action=action,
            proficiency=proficiency,
            allowed=allowed
        )
        self.character_manager.emit(event)

    def set_pool(self, prof_type: str, origin: str, allowed: int, options: List[str]) -> bool:
        """
        Replace a pool's allowance and options

        Existing selections are kept when they remain valid options and fit the
        new allowance; the rest are retracted together with their choice tag.

        Args:
            prof_type: 'skills', 'languages' or 'tools'
            origin: 'race', 'class' or 'background'
            allowed: Number of selections permitted
            options: Selectable names

        Returns:
            True if the pool was configured
        """
        pool = self._get_pool(prof_type, origin)
        if pool is None:
            return False

        allowed = allowed if isinstance(allowed, int) and not isinstance(allowed, bool) else 0
        pool.allowed = max(0, allowed)
        pool.options = unique_names(option for option in options or [] if isinstance(option, str))

        kept = []
        for name in pool.selected:
            if len(kept) < pool.allowed and find_matching(pool.options, name):
                kept.append(name)
            else:
                logger.info(f"Retracting {prof_type} selection '{name}' no longer offered by {origin}")
                self.proficiency_manager.remove_proficiency_from_source(prof_type, name, choice_source(origin))
        pool.selected = kept

        self.recombine(prof_type)
        self._emit(prof_type, origin, 'configured', allowed=pool.allowed)
        return True

    def reset_pool(self, prof_type: str, origin: str) -> bool:
        """Empty a pool and retract the origin's choice grants"""
        pool = self._get_pool(prof_type, origin)
        if pool is None:
            return False

        for name in pool.selected:
            self.proficiency_manager.remove_proficiency_from_source(prof_type, name, choice_source(origin))
        pool.allowed = 0
        pool.options = []
        pool.selected = []

        self.recombine(prof_type)
        self._emit(prof_type, origin, 'configured', allowed=0)
        return True

    def select(self, prof_type: str, origin: str, name: str) -> bool:
        """
        Select an option from an origin's pool

        Returns:
            False if the name is not offered, already selected, or the pool is full
        """
        pool = self._get_pool(prof_type, origin)
        if pool is None:
            return False
        if not name:
            logger.warning(f"Ignoring empty {prof_type} selection for {origin}")
            return False

        option = find_matching(pool.options, name)
        if option is None:
            logger.warning(f"'{name}' is not a {prof_type} option for {origin}")
            return False
        if find_matching(pool.selected, name):
            logger.warning(f"'{name}' is already selected for {origin} {prof_type}")
            return False
        if len(pool.selected) >= pool.allowed:
            logger.warning(f"No {prof_type} selections left for {origin} ({pool.allowed} allowed)")
            return False

        pool.selected.append(option)
        self.proficiency_manager.add_proficiency(prof_type, option, choice_source(origin))
        self.recombine(prof_type)
        self._emit(prof_type, origin, 'selected', proficiency=option)
        return True

    def deselect(self, prof_type: str, origin: str, name: str) -> bool:
        """Remove a selection and exactly that origin's choice tag"""
        pool = self._get_pool(prof_type, origin)
        if pool is None:
            return False

        selected = find_matching(pool.selected, name)
        if selected is None:
            logger.warning(f"'{name}' is not selected for {origin} {prof_type}")
            return False

        pool.selected.remove(selected)
        self.proficiency_manager.remove_proficiency_from_source(prof_type, selected, choice_source(origin))
        self.recombine(prof_type)
        self._emit(prof_type, origin, 'deselected', proficiency=selected)
        return True

    def drop_selection(self, prof_type: str, origin: str, name: str) -> bool:
        """Forget a selection whose choice grant the ledger already retracted"""
        optional_set = self.state.optional_proficiencies.get(prof_type)
        pool = optional_set.pool(origin) if optional_set else None
        selected = find_matching(pool.selected, name) if pool else None
        if selected is None:
            return False

        pool.selected.remove(selected)
        self.recombine(prof_type)
        self._emit(prof_type, origin, 'deselected', proficiency=selected)
        return True

    def recombine(self, prof_type: str):
        """Recompute the combined view from the per-origin pools"""
        optional_set = self._require_set(prof_type)
        pools = [optional_set.pools[origin] for origin in ORIGINS]
        optional_set.allowed = sum(pool.allowed for pool in pools)
        optional_set.options = unique_names(option for pool in pools for option in pool.options)
        optional_set.selected = unique_names(name for pool in pools for name in pool.selected)

    def recombine_all(self):
        for prof_type in self.state.optional_proficiencies:
            self.recombine(prof_type)

    def get_combined_pool(self, prof_type: str) -> Dict[str, Any]:
        optional_set = self.state.optional_proficiencies.get(prof_type)
        if optional_set is None:
            return {}
        return optional_set.to_dict()

    def get_pool(self, prof_type: str, origin: str) -> Dict[str, Any]:
        optional_set = self.state.optional_proficiencies.get(prof_type)
        pool = optional_set.pool(origin) if optional_set else None
        return pool.to_dict() if pool else {}

    def get_selected_names(self, prof_type: str, origin: str) -> List[str]:
        optional_set = self.state.optional_proficiencies.get(prof_type)
        pool = optional_set.pool(origin) if optional_set else None
        return list(pool.selected) if pool else []

    def get_available_options(self, prof_type: str, origin: str) -> List[str]:
        """Options of an origin's pool that are neither selected nor fixed-granted"""
        optional_set = self.state.optional_proficiencies.get(prof_type)
        pool = optional_set.pool(origin) if optional_set else None
        if pool is None:
            return []
        return [
            option for option in pool.options
            if not find_matching(pool.selected, option)
            and not self.proficiency_manager.is_granted_by_fixed_source(prof_type, option)
        ]

    def is_available_for_selection(self, prof_type: str, name: str) -> bool:
        optional_set = self.state.optional_proficiencies.get(prof_type)
        if optional_set is None or not find_matching(optional_set.options, name):
            return False
        return not self.proficiency_manager.is_granted_by_fixed_source(prof_type, name)

    def restore_selections(self, prof_type: str, origin: str, previous: List[str]) -> List[str]:
        """Re-select earlier choices that are still offered, free and not fixed-granted"""
        restored = []
        for name in previous or []:
            pool = self._get_pool(prof_type, origin)
            if pool is None or len(pool.selected) >= pool.allowed:
                break
            if not find_matching(pool.options, name):
                continue
            if self.proficiency_manager.is_granted_by_fixed_source(prof_type, name):
                continue
            if self.select(prof_type, origin, name):
                restored.append(name)
        if restored:
            logger.debug(f"Restored {origin} {prof_type} selections: {restored}")
        return restored
