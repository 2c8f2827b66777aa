"""
Named rule exceptions applied after generic rule-data derivation.

Each override matches one build selection and adjusts the ledgers directly.
Keep the generic parser free of these cases; add new ones to RULE_OVERRIDES.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional

from loguru import logger

from .build_state import BuildSelection
from .proficiency_constants import STANDARD_SKILL_OPTIONS
from .utils.normalization import names_match


@dataclass
class RuleOverride:
    """Override keyed by slot, record name, record source and optional sub-selection"""
    key: str
    kind: str
    name: str
    source: str
    apply: Callable
    sub_name: Optional[str] = None

    def matches(self, kind: str, selection: BuildSelection) -> bool:
        if kind != self.kind:
            return False
        if not names_match(selection.name, self.name) or not names_match(selection.source, self.source):
            return False
        if self.sub_name is not None and not names_match(selection.sub_name, self.sub_name):
            return False
        return True


def _half_elf_charisma(character_manager, selection: BuildSelection):
    # Generic parsing may fold charisma into a choice; the fixed +2 always applies
    character_manager.get_manager('ability_bonus').add('charisma', 2, 'Race')


def _variant_human_skill(character_manager, selection: BuildSelection):
    character_manager.get_manager('optional_proficiency').set_pool(
        'skills', 'race', 1, list(STANDARD_SKILL_OPTIONS)
    )


RULE_OVERRIDES: List[RuleOverride] = [
    RuleOverride('half_elf_charisma', 'race', 'Half-Elf', 'PHB', _half_elf_charisma),
    RuleOverride('variant_human_skill', 'race', 'Human', 'PHB', _variant_human_skill,
                 sub_name='Variant'),
]


def apply_rule_overrides(character_manager, kind: str, selection: BuildSelection) -> List[str]:
    """
    Apply every override matching the selection

    Args:
        character_manager: CharacterManager whose ledgers are adjusted
        kind: Build-source slot ('race', 'class', 'background')
        selection: The selection just recorded for that slot

    Returns:
        Keys of the overrides that were applied
    """
    applied = []
    for override in RULE_OVERRIDES:
        if override.matches(kind, selection):
            logger.debug(f"Applying rule override '{override.key}' to {selection.name}")
            override.apply(character_manager, selection)
            applied.append(override.key)
    return applied
