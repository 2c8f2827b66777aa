"""
Proficiency Manager - granted proficiency names and the source tags behind them
A name stays granted exactly as long as at least one source tag backs it
"""

from typing import Dict, List, Optional, Any
from loguru import logger
import time

from ..events import EventType, ProficiencyAddedEvent, ProficiencyRemovedEvent
from ..proficiency_constants import PROFICIENCY_TYPES, DEFAULT_LANGUAGE, DEFAULT_SOURCE, ORIGINS
from ..utils.normalization import find_matching, normalize_for_lookup


def is_choice_source(source: str) -> bool:
    """'Race Choice', 'Class Choice' etc. denote optional-choice grants"""
    return 'Choice' in (source or '')


def origin_for_choice_source(source: str) -> Optional[str]:
    """'Race Choice' -> 'race'; None for tags no pool grants"""
    key = normalize_for_lookup(source)
    for origin in ORIGINS:
        if key == normalize_for_lookup(f"{origin} Choice"):
            return origin
    return None


class ProficiencyManager:
    """Manages the proficiency ledger for all proficiency types"""

    def __init__(self, character_manager):
        """
        Initialize the ProficiencyManager

        Args:
            character_manager: Reference to parent CharacterManager
        """
        self.character_manager = character_manager

    @property
    def state(self):
        return self.character_manager.state

    def _ensure_type(self, prof_type: str):
        self.state.proficiencies.setdefault(prof_type, [])
        self.state.proficiency_sources.setdefault(prof_type, {})

    def initialize_structures(self, grant_default_language: bool = True):
        """Ensure every proficiency type exists; grant Common when no language is known"""
        for prof_type in PROFICIENCY_TYPES:
            self._ensure_type(prof_type)
        if grant_default_language and not self.state.proficiencies['languages']:
            self.add_proficiency('languages', DEFAULT_LANGUAGE, DEFAULT_SOURCE)

    def _find_granted(self, prof_type: str, name: str) -> Optional[str]:
        return find_matching(self.state.proficiencies.get(prof_type, []), name)

    def add_proficiency(self, prof_type: str, name: str, source: str) -> bool:
        """
        Grant a proficiency from a source

        Args:
            prof_type: Proficiency type ('skills', 'tools', ...)
            name: Proficiency name
            source: Source tag

        Returns:
            True if the name was not granted before
        """
        if not prof_type or not name or not source:
            logger.warning(f"Ignoring proficiency grant with missing data: {prof_type!r}, {name!r}, {source!r}")
            return False

        self._ensure_type(prof_type)
        stored = self._find_granted(prof_type, name)
        was_new = stored is None
        if was_new:
            stored = name
            self.state.proficiencies[prof_type].append(stored)

        self.state.proficiency_sources[prof_type].setdefault(stored, set()).add(source)
        logger.debug(f"Granted {prof_type} '{stored}' from {source} (new={was_new})")

        if prof_type == 'skills' and not is_choice_source(source):
            self.character_manager.get_manager('refund').reconcile(prof_type, stored, source)

        event = ProficiencyAddedEvent(
            event_type=EventType.PROFICIENCY_ADDED,
            source_manager='proficiency',
            timestamp=time.time(),
            prof_type=prof_type,
            proficiency=stored,
            source=source,
            was_new=was_new
        )
        self.character_manager.emit(event)
        return was_new

    def _drop_if_unbacked(self, prof_type: str, name: str):
        sources = self.state.proficiency_sources[prof_type]
        if not sources.get(name):
            sources.pop(name, None)
            granted = self.state.proficiencies[prof_type]
            if name in granted:
                granted.remove(name)

    def remove_by_source(self, source: str) -> Dict[str, List[str]]:
        """
        Retract every grant tagged with source or with '<source> Choice'

        Args:
            source: Source tag, e.g. 'Race'

        Returns:
            {type: [names that lost a tag]}
        """
        if not source:
            logger.warning("Ignoring remove_by_source without a source")
            return {}

        choice_tag = f"{source} Choice"
        tags = {source, choice_tag}
        removed: Dict[str, List[str]] = {}
        retracted_choices = []
        for prof_type, sources_by_name in self.state.proficiency_sources.items():
            for name in list(sources_by_name.keys()):
                sources = sources_by_name[name]
                if sources & tags:
                    if choice_tag in sources:
                        retracted_choices.append((prof_type, name))
                    sources -= tags
                    removed.setdefault(prof_type, []).append(name)
                    self._drop_if_unbacked(prof_type, name)

        # Pool selections must not outlive their choice grant
        origin = origin_for_choice_source(choice_tag)
        if origin is not None:
            optional = self.character_manager.get_manager('optional_proficiency')
            for prof_type, name in retracted_choices:
                optional.drop_selection(prof_type, origin, name)

        if removed:
            logger.debug(f"Removed proficiencies from {source}: {removed}")
        event = ProficiencyRemovedEvent(
            event_type=EventType.PROFICIENCY_REMOVED_BY_SOURCE,
            source_manager='proficiency',
            timestamp=time.time(),
            source=source,
            removed=removed
        )
        self.character_manager.emit(event)
        return removed

    def remove_proficiency_from_source(self, prof_type: str, name: str, source: str) -> bool:
        """Remove one source tag from one name, dropping the name if nothing else backs it"""
        stored = self._find_granted(prof_type, name)
        if stored is None:
            return False
        sources = self.state.proficiency_sources[prof_type].get(stored, set())
        if source not in sources:
            return False
        sources.discard(source)
        self._drop_if_unbacked(prof_type, stored)
        return True

    def has_proficiency(self, prof_type: str, name: str) -> bool:
        return self._find_granted(prof_type, name) is not None

    def get_proficiency_sources(self, prof_type: str, name: str) -> List[str]:
        stored = self._find_granted(prof_type, name)
        if stored is None:
            return []
        return sorted(self.state.proficiency_sources[prof_type].get(stored, set()))

    def is_granted_by_fixed_source(self, prof_type: str, name: str) -> bool:
        return any(not is_choice_source(source) for source in self.get_proficiency_sources(prof_type, name))

    def get_proficiencies(self, prof_type: str) -> List[str]:
        return list(self.state.proficiencies.get(prof_type, []))

    def get_proficiencies_with_sources(self, prof_type: str) -> List[Dict[str, Any]]:
        """Granted names of a type with their sorted source tags"""
        sources = self.state.proficiency_sources.get(prof_type, {})
        return [
            {'name': name, 'sources': sorted(sources.get(name, set()))}
            for name in self.state.proficiencies.get(prof_type, [])
        ]

    def find_names_with_source_prefix(self, prefix: str) -> Dict[str, List[str]]:
        """Names carrying any tag that starts with prefix, ignoring case"""
        key = normalize_for_lookup(prefix)
        found: Dict[str, List[str]] = {}
        for prof_type, sources_by_name in self.state.proficiency_sources.items():
            for name, sources in sources_by_name.items():
                if any(normalize_for_lookup(tag).startswith(key) for tag in sources):
                    found.setdefault(prof_type, []).append(name)
        return found
