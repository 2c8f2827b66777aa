"""
Build Source Manager - applies race, class and background rule data
Every apply tears the slot down first, then derives grants from the new data
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from loguru import logger
import time

from ..build_state import BuildSelection
from ..events import (
    EventType, BuildSourceAppliedEvent, RefreshRequestedEvent, CharacterUpdatedEvent
)
from ..exceptions import UnknownBuildSourceKindError
from ..proficiency_constants import (
    OPTIONAL_PROFICIENCY_TYPES, DEFAULT_SIZE, DEFAULT_SPEED
)
from ..rule_exceptions import apply_rule_overrides
from ..utils.normalization import normalize_for_lookup
from ..utils.rule_data_parser import rule_data_parser


class ExternalCachePort:
    """Derived caches held outside the engine, invalidated on every teardown"""

    def invalidate(self, kind: str) -> None:
        raise NotImplementedError


class NullCachePort(ExternalCachePort):
    def invalidate(self, kind: str) -> None:
        pass


@dataclass(frozen=True)
class BuildSlot:
    """Source tags and pool origin of one build-source slot"""
    kind: str
    source: str
    sub_source: str

    @property
    def tags(self) -> List[str]:
        return [self.source, self.sub_source]


BUILD_SLOTS: Dict[str, BuildSlot] = {
    'race': BuildSlot('race', 'Race', 'Subrace'),
    'class': BuildSlot('class', 'Class', 'Subclass'),
    'background': BuildSlot('background', 'Background', 'Background Variant'),
}


def resolve_slot(kind: str) -> BuildSlot:
    slot = BUILD_SLOTS.get(normalize_for_lookup(kind))
    if slot is None:
        raise UnknownBuildSourceKindError(kind)
    return slot


class BuildSourceManager:
    """Tears down and sets up build-source slots through the ledgers"""

    def __init__(self, character_manager):
        """
        Initialize the BuildSourceManager

        Args:
            character_manager: Reference to parent CharacterManager
        """
        self.character_manager = character_manager
        self.parser = rule_data_parser

    @property
    def state(self):
        return self.character_manager.state

    def _manager(self, name: str):
        return self.character_manager.get_manager(name)

    def apply(self, kind: str, rule_data: Optional[Dict[str, Any]],
              sub_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Replace the build source of a slot

        Args:
            kind: 'race', 'class' or 'background'
            rule_data: Record to apply; None clears the slot
            sub_data: Optional subrace, subclass or background variant record

        Returns:
            Dict describing the teardown and setup
        """
        slot = resolve_slot(kind)
        old_selection = self.state.selection_for(slot.kind)
        previous_selections = {
            prof_type: self._manager('optional_proficiency').get_selected_names(prof_type, slot.kind)
            for prof_type in OPTIONAL_PROFICIENCY_TYPES
        }

        if rule_data is not None and not isinstance(rule_data, dict):
            logger.warning(f"Ignoring malformed {slot.kind} rule data; clearing slot")
            rule_data = None
        if sub_data is not None and not isinstance(sub_data, dict):
            logger.warning(f"Ignoring malformed sub-record for {slot.kind}")
            sub_data = None

        logger.info(f"Applying {slot.kind}: {old_selection.name or '<none>'} -> "
                    f"{(rule_data or {}).get('name') or '<none>'}")

        result = {
            'kind': slot.kind,
            'old': old_selection.to_dict(),
            'removed': self._teardown(slot),
            'new': None,
            'overrides': [],
            'restored': {},
        }

        if rule_data is not None:
            selection = self._setup(slot, rule_data, sub_data)
            result['new'] = selection.to_dict()
            result['overrides'] = apply_rule_overrides(self.character_manager, slot.kind, selection)
            result['restored'] = self._restore_selections(slot, previous_selections)

        self._manager('optional_proficiency').recombine_all()
        new_selection = self.state.selection_for(slot.kind)

        # Outside observers only hear about the slot once every mutation is done
        self.character_manager.cache_port.invalidate(slot.kind)
        self._request_refresh(slot, 'teardown')
        self.character_manager.emit(BuildSourceAppliedEvent(
            event_type=EventType.BUILD_SOURCE_APPLIED,
            source_manager='build_source',
            timestamp=time.time(),
            kind=slot.kind,
            old_name=old_selection.name,
            new_name=new_selection.name,
            sub_name=new_selection.sub_name,
            cleared=rule_data is None
        ))
        if rule_data is not None:
            self._request_refresh(slot, 'setup')
        self.character_manager.emit(CharacterUpdatedEvent(
            event_type=EventType.CHARACTER_UPDATED,
            source_manager='build_source',
            timestamp=time.time(),
            reason=f"{slot.kind}_applied"
        ))
        return result

    def _request_refresh(self, slot: BuildSlot, phase: str):
        self.character_manager.emit(RefreshRequestedEvent(
            event_type=EventType.REFRESH_REQUESTED,
            source_manager='build_source',
            timestamp=time.time(),
            kind=slot.kind,
            phase=phase
        ))

    def _teardown(self, slot: BuildSlot) -> Dict[str, List[str]]:
        """Retract everything the slot contributed; returns names that lost a tag"""
        abilities = self._manager('ability_bonus')
        traits = self._manager('trait')
        proficiencies = self._manager('proficiency')
        optional = self._manager('optional_proficiency')

        for tag in slot.tags:
            abilities.clear_by_source(tag)
            abilities.clear_by_source_prefix(f"{tag} Choice")
            abilities.clear_pending_choices_by_source_prefix(f"{tag} Choice")
            traits.clear_by_source(tag)

        if slot.kind == 'race':
            traits.clear_racial_features()
            self.state.size = DEFAULT_SIZE
            self.state.speed = dict(DEFAULT_SPEED)
        elif slot.kind == 'class':
            self.state.hit_die = 0
            self.state.hit_points['max'] = 0
            self.state.hit_points['current'] = 0

        removed: Dict[str, List[str]] = {}
        for tag in slot.tags:
            for prof_type, names in proficiencies.remove_by_source(tag).items():
                merged = removed.setdefault(prof_type, [])
                merged.extend(name for name in names if name not in merged)

        for prof_type in OPTIONAL_PROFICIENCY_TYPES:
            optional.reset_pool(prof_type, slot.kind)

        self.state.set_selection(slot.kind, BuildSelection())
        return removed

    def _setup(self, slot: BuildSlot, rule_data: Dict[str, Any],
               sub_data: Optional[Dict[str, Any]]) -> BuildSelection:
        selection = BuildSelection(
            name=str(rule_data.get('name') or ''),
            source=str(rule_data.get('source') or ''),
            sub_name=str((sub_data or {}).get('name') or '')
        )
        self.state.set_selection(slot.kind, selection)

        records = [(rule_data, slot.source)]
        if sub_data is not None:
            records.append((sub_data, slot.sub_source))

        pool_grants = {}
        for record, tag in records:
            self._apply_scalars(slot, record)
            self._apply_abilities(record, tag)
            self._apply_traits(record, tag)
            parsed = self.parser.parse_proficiencies(record, own_name=selection.name)
            for prof_type, name in parsed.fixed:
                self._manager('proficiency').add_proficiency(prof_type, name, tag)
            for prof_type, grant in parsed.choices.items():
                if prof_type in pool_grants:
                    pool_grants[prof_type].merge(grant)
                else:
                    pool_grants[prof_type] = grant

        for prof_type, grant in pool_grants.items():
            self._manager('optional_proficiency').set_pool(prof_type, slot.kind, grant.allowed, grant.options)

        logger.info(f"Set up {slot.kind} {selection.name}"
                    f"{' (' + selection.sub_name + ')' if selection.sub_name else ''}")
        return selection

    def _apply_scalars(self, slot: BuildSlot, record: Dict[str, Any]):
        if slot.kind == 'race':
            scalars = self.parser.parse_racial_scalars(record)
            if scalars.size:
                self.state.size = scalars.size
            if scalars.speed:
                self.state.speed = scalars.speed
            traits = self._manager('trait')
            if scalars.darkvision is not None:
                traits.set_darkvision(scalars.darkvision)
            for resistance in scalars.resistances:
                traits.add_resistance(resistance)
        elif slot.kind == 'class':
            hit_die = self.parser.parse_hit_die(record)
            if hit_die:
                # First-level hit points are the die maximum
                self.state.hit_die = hit_die
                self.state.hit_points['max'] = hit_die
                self.state.hit_points['current'] = hit_die

    def _apply_abilities(self, record: Dict[str, Any], tag: str):
        abilities = self._manager('ability_bonus')
        parsed = self.parser.parse_abilities(record.get('ability'))
        for ability, value in parsed.fixed:
            abilities.add(ability, value, tag)
        for choice in parsed.choices:
            abilities.add_pending_choice(
                count=choice.count,
                amount=choice.amount,
                from_abilities=choice.from_abilities,
                source=f"{tag} Choice"
            )

    def _apply_traits(self, record: Dict[str, Any], tag: str):
        traits = self._manager('trait')
        for name, description in self.parser.parse_traits(record.get('entries')):
            traits.add(name, description, tag)

    def _restore_selections(self, slot: BuildSlot, previous: Dict[str, List[str]]) -> Dict[str, List[str]]:
        optional = self._manager('optional_proficiency')
        restored = {}
        for prof_type, names in previous.items():
            if names:
                names = optional.restore_selections(prof_type, slot.kind, names)
                if names:
                    restored[prof_type] = names
        return restored
