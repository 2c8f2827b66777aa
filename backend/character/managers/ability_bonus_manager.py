"""
Ability Bonus Manager - per-ability ledger of {value, source} contributions
Handles replace-by-source, clear-by-source and pending ability choices
"""

from typing import Dict, List, Optional, Any
from loguru import logger
import time

from ..build_state import AbilityBonus, PendingAbilityChoice
from ..events import EventType, AbilityBonusChangedEvent
from ..utils.normalization import ABILITIES, normalize_ability_name, normalize_for_lookup


class AbilityBonusManager:
    """Manages ability bonuses and pending ability choices"""

    def __init__(self, character_manager):
        """
        Initialize the AbilityBonusManager

        Args:
            character_manager: Reference to parent CharacterManager
        """
        self.character_manager = character_manager

    @property
    def state(self):
        return self.character_manager.state

    def _emit_changed(self, action: str, source: str, ability: Optional[str] = None,
                      value: Optional[int] = None):
        event = AbilityBonusChangedEvent(
            event_type=EventType.ABILITY_BONUS_CHANGED,
            source_manager='ability_bonus',
            timestamp=time.time(),
            action=action,
            source=source,
            ability=ability,
            value=value
        )
        self.character_manager.emit(event)

    def add(self, ability: str, value: int, source: str) -> bool:
        """
        Add or replace the bonus a source contributes to an ability

        Args:
            ability: Ability name or abbreviation ('str', 'Strength')
            value: Bonus value
            source: Source tag

        Returns:
            True if the ledger was updated
        """
        if not ability or not source:
            logger.warning(f"Ignoring ability bonus with missing ability/source: {ability!r}, {source!r}")
            return False
        canonical = normalize_ability_name(ability)
        if canonical is None:
            logger.warning(f"Ignoring ability bonus for unknown ability '{ability}'")
            return False
        if isinstance(value, bool) or not isinstance(value, int):
            logger.warning(f"Ignoring non-integer ability bonus {value!r} for {canonical}")
            return False

        bonuses = self.state.ability_bonuses.setdefault(canonical, [])
        for bonus in bonuses:
            if bonus.source == source:
                bonus.value = value
                break
        else:
            bonuses.append(AbilityBonus(value=value, source=source))

        logger.debug(f"Ability bonus {canonical} {value:+d} from {source}")
        self._emit_changed('added', source, canonical, value)
        return True

    def remove(self, ability: str, value: int, source: str) -> bool:
        """Remove the exact (value, source) entry of an ability"""
        canonical = normalize_ability_name(ability)
        if canonical is None or not source:
            logger.warning(f"Ignoring bonus removal with invalid ability/source: {ability!r}, {source!r}")
            return False

        bonuses = self.state.ability_bonuses.get(canonical, [])
        for index, bonus in enumerate(bonuses):
            if bonus.source == source and bonus.value == value:
                del bonuses[index]
                self._emit_changed('removed', source, canonical, value)
                return True
        return False

    def clear_by_source(self, source: str) -> int:
        """Remove every bonus whose source equals the tag exactly"""
        if not source:
            return 0
        removed = 0
        for ability, bonuses in self.state.ability_bonuses.items():
            kept = [bonus for bonus in bonuses if bonus.source != source]
            removed += len(bonuses) - len(kept)
            self.state.ability_bonuses[ability] = kept
        if removed:
            self._emit_changed('cleared', source)
        return removed

    def clear_by_source_prefix(self, prefix: str) -> int:
        """Remove every bonus whose source starts with prefix, ignoring case"""
        key = normalize_for_lookup(prefix)
        if not key:
            return 0
        removed = 0
        for ability, bonuses in self.state.ability_bonuses.items():
            kept = [bonus for bonus in bonuses if not normalize_for_lookup(bonus.source).startswith(key)]
            removed += len(bonuses) - len(kept)
            self.state.ability_bonuses[ability] = kept
        if removed:
            self._emit_changed('cleared', prefix)
        return removed

    def get_bonuses_with_sources(self, ability: str) -> List[Dict[str, Any]]:
        canonical = normalize_ability_name(ability)
        if canonical is None:
            return []
        return [bonus.to_dict() for bonus in self.state.ability_bonuses.get(canonical, [])]

    def get_all_bonuses(self) -> Dict[str, List[Dict[str, Any]]]:
        return {ability: self.get_bonuses_with_sources(ability) for ability in ABILITIES}

    def get_total_bonus(self, ability: str) -> int:
        canonical = normalize_ability_name(ability)
        if canonical is None:
            return 0
        return sum(bonus.value for bonus in self.state.ability_bonuses.get(canonical, []))

    def get_effective_score(self, ability: str) -> int:
        """Base score plus all bonuses"""
        canonical = normalize_ability_name(ability)
        if canonical is None:
            return 0
        return self.state.ability_scores.get(canonical, 0) + self.get_total_bonus(canonical)

    # Pending ability choices

    def add_pending_choice(self, count: int = 1, amount: int = 1,
                           from_abilities: Optional[List[str]] = None, source: str = '') -> bool:
        """
        Queue a 'choose N abilities' grant

        Args:
            count: Number of distinct abilities to pick
            amount: Bonus applied to each picked ability
            from_abilities: Allowed abilities, all six when omitted
            source: Choice source tag, e.g. 'Race Choice'
        """
        if not source:
            logger.warning("Ignoring pending ability choice without a source")
            return False

        allowed = []
        for ability in from_abilities or ABILITIES:
            canonical = normalize_ability_name(ability)
            if canonical and canonical not in allowed:
                allowed.append(canonical)
        if not allowed:
            allowed = list(ABILITIES)

        count = count if isinstance(count, int) and count > 0 else 1
        amount = amount if isinstance(amount, int) and amount else 1
        self.state.pending_ability_choices.append(PendingAbilityChoice(
            count=min(count, len(allowed)),
            amount=amount,
            from_abilities=allowed,
            source=source
        ))
        logger.debug(f"Pending ability choice from {source}: {count} x {amount:+d}")
        return True

    def clear_pending_choices_by_source_prefix(self, prefix: str) -> int:
        key = normalize_for_lookup(prefix)
        if not key:
            return 0
        before = len(self.state.pending_ability_choices)
        self.state.pending_ability_choices = [
            choice for choice in self.state.pending_ability_choices
            if not normalize_for_lookup(choice.source).startswith(key)
        ]
        return before - len(self.state.pending_ability_choices)

    def get_pending_choices(self) -> List[Dict[str, Any]]:
        return [choice.to_dict() for choice in self.state.pending_ability_choices]

    def _choice_ordinal(self, index: int) -> int:
        """1-based position of a choice among pending choices sharing its source"""
        choices = self.state.pending_ability_choices
        source = choices[index].source
        return 1 + sum(1 for choice in choices[:index] if choice.source == source)

    def _resolution_prefix(self, index: int) -> str:
        choice = self.state.pending_ability_choices[index]
        return f"{choice.source} {self._choice_ordinal(index)}."

    def resolve_pending_choice(self, index: int, abilities: List[str]) -> bool:
        """
        Resolve a pending choice, replacing any earlier resolution of it

        Bonuses are tagged '<choice source> <n>.<slot>' (e.g. 'Race Choice 1.2'),
        so clearing the '<Kind> Choice' prefix retracts them with the slot.

        Args:
            index: Position in the pending choice list
            abilities: Exactly `count` distinct abilities from the choice's list

        Returns:
            True if the choice was resolved
        """
        choices = self.state.pending_ability_choices
        if not isinstance(index, int) or index < 0 or index >= len(choices):
            logger.warning(f"No pending ability choice at index {index}")
            return False

        choice = choices[index]
        canonical = [normalize_ability_name(ability) for ability in abilities or []]
        if any(ability is None for ability in canonical):
            logger.warning(f"Unknown ability in choice resolution: {abilities}")
            return False
        if len(canonical) != choice.count:
            logger.warning(f"Choice from {choice.source} needs {choice.count} abilities, got {len(canonical)}")
            return False
        if len(set(canonical)) != len(canonical):
            logger.warning(f"Duplicate abilities in choice resolution: {abilities}")
            return False
        not_allowed = [ability for ability in canonical if ability not in choice.from_abilities]
        if not_allowed:
            logger.warning(f"Abilities {not_allowed} are not offered by choice from {choice.source}")
            return False

        prefix = self._resolution_prefix(index)
        self.clear_by_source_prefix(prefix)
        for slot, ability in enumerate(canonical):
            self.add(ability, choice.amount, f"{prefix}{slot + 1}")
        choice.selected = canonical

        self._emit_changed('choice_resolved', choice.source)
        return True
