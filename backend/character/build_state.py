"""
In-memory build state of one character.

Plain dataclasses owned by a CharacterManager. Only the managers mutate them;
the persisted shape lives in character/serializer.py.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .proficiency_constants import (
    PROFICIENCY_TYPES, OPTIONAL_PROFICIENCY_TYPES, ORIGINS,
    DEFAULT_SIZE, DEFAULT_SPEED, DEFAULT_ABILITY_SCORE
)
from .utils.normalization import ABILITIES


@dataclass
class AbilityBonus:
    """One contribution to an ability score"""
    value: int
    source: str

    def to_dict(self) -> Dict[str, object]:
        return {'value': self.value, 'source': self.source}


@dataclass
class PendingAbilityChoice:
    """An unresolved 'increase N abilities by amount' grant"""
    count: int = 1
    amount: int = 1
    from_abilities: List[str] = field(default_factory=lambda: list(ABILITIES))
    source: str = ''
    selected: List[str] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return len(self.selected) == self.count

    def to_dict(self) -> Dict[str, object]:
        return {
            'count': self.count,
            'amount': self.amount,
            'from': list(self.from_abilities),
            'source': self.source,
            'selected': list(self.selected),
        }


@dataclass
class Trait:
    description: str = ''
    source: str = ''


@dataclass
class Features:
    darkvision: int = 0
    resistances: Set[str] = field(default_factory=set)
    traits: Dict[str, Trait] = field(default_factory=dict)


@dataclass
class OptionalPool:
    """Capacity-bounded choice slot for one type and origin"""
    allowed: int = 0
    options: List[str] = field(default_factory=list)
    selected: List[str] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return max(0, self.allowed - len(self.selected))

    def to_dict(self) -> Dict[str, object]:
        return {
            'allowed': self.allowed,
            'options': list(self.options),
            'selected': list(self.selected),
        }


@dataclass
class OptionalProficiencySet:
    """Per-origin pools of one proficiency type plus their combined view"""
    pools: Dict[str, OptionalPool] = field(
        default_factory=lambda: {origin: OptionalPool() for origin in ORIGINS}
    )
    allowed: int = 0
    options: List[str] = field(default_factory=list)
    selected: List[str] = field(default_factory=list)

    def pool(self, origin: str) -> Optional[OptionalPool]:
        return self.pools.get(origin)

    def to_dict(self) -> Dict[str, object]:
        data = {
            'allowed': self.allowed,
            'options': list(self.options),
            'selected': list(self.selected),
        }
        for origin in ORIGINS:
            data[origin] = self.pools[origin].to_dict()
        return data


@dataclass
class BuildSelection:
    """Currently applied build source for one slot; empty strings mean unselected"""
    name: str = ''
    source: str = ''
    sub_name: str = ''

    @property
    def is_set(self) -> bool:
        return bool(self.name)

    def to_dict(self) -> Dict[str, str]:
        return {'name': self.name, 'source': self.source, 'sub_name': self.sub_name}


@dataclass
class CharacterState:
    """Aggregate build state of one character"""
    name: str = ''
    ability_scores: Dict[str, int] = field(
        default_factory=lambda: {ability: DEFAULT_ABILITY_SCORE for ability in ABILITIES}
    )
    ability_bonuses: Dict[str, List[AbilityBonus]] = field(
        default_factory=lambda: {ability: [] for ability in ABILITIES}
    )
    pending_ability_choices: List[PendingAbilityChoice] = field(default_factory=list)
    proficiencies: Dict[str, List[str]] = field(
        default_factory=lambda: {prof_type: [] for prof_type in PROFICIENCY_TYPES}
    )
    proficiency_sources: Dict[str, Dict[str, Set[str]]] = field(
        default_factory=lambda: {prof_type: {} for prof_type in PROFICIENCY_TYPES}
    )
    optional_proficiencies: Dict[str, OptionalProficiencySet] = field(
        default_factory=lambda: {
            prof_type: OptionalProficiencySet() for prof_type in OPTIONAL_PROFICIENCY_TYPES
        }
    )
    features: Features = field(default_factory=Features)
    race: BuildSelection = field(default_factory=BuildSelection)
    character_class: BuildSelection = field(default_factory=BuildSelection)
    background: BuildSelection = field(default_factory=BuildSelection)
    size: str = DEFAULT_SIZE
    speed: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_SPEED))
    hit_points: Dict[str, int] = field(
        default_factory=lambda: {'current': 0, 'max': 0, 'temp': 0}
    )
    hit_die: int = 0
    allowed_sources: Set[str] = field(default_factory=lambda: {'PHB'})

    def selection_for(self, kind: str) -> BuildSelection:
        """Selection record for 'race', 'class' or 'background'"""
        if kind == 'class':
            return self.character_class
        return getattr(self, kind)

    def set_selection(self, kind: str, selection: BuildSelection):
        if kind == 'class':
            self.character_class = selection
        else:
            setattr(self, kind, selection)
