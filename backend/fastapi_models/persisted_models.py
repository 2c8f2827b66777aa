"""
Pydantic models for the persisted character record
Sets are stored as sorted lists and keys follow the saved-record camelCase
"""

from typing import Dict, List
from pydantic import BaseModel, Field, ConfigDict


class PersistedAbilityBonus(BaseModel):
    value: int
    source: str


class PersistedPendingChoice(BaseModel):
    """Unresolved 'choose abilities' grant"""
    model_config = ConfigDict(populate_by_name=True)

    count: int = 1
    amount: int = 1
    from_abilities: List[str] = Field(default_factory=list, alias="from")
    source: str
    selected: List[str] = Field(default_factory=list)


class PersistedPool(BaseModel):
    allowed: int = Field(0, ge=0)
    options: List[str] = Field(default_factory=list)
    selected: List[str] = Field(default_factory=list)


class PersistedOptionalSet(BaseModel):
    """Per-origin pools plus the combined view of one proficiency type"""
    model_config = ConfigDict(populate_by_name=True)

    allowed: int = 0
    options: List[str] = Field(default_factory=list)
    selected: List[str] = Field(default_factory=list)
    race: PersistedPool = Field(default_factory=PersistedPool)
    class_pool: PersistedPool = Field(default_factory=PersistedPool, alias="class")
    background: PersistedPool = Field(default_factory=PersistedPool)


class PersistedTrait(BaseModel):
    description: str = ""
    source: str = ""


class PersistedFeatures(BaseModel):
    darkvision: int = 0
    resistances: List[str] = Field(default_factory=list)
    traits: Dict[str, PersistedTrait] = Field(default_factory=dict)


class PersistedSelection(BaseModel):
    """Applied build source; subrace/subclass/variant name in sub_name"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    source: str = ""
    sub_name: str = Field("", alias="subName")


class PersistedHitPoints(BaseModel):
    current: int = 0
    max: int = 0
    temp: int = 0


class PersistedCharacter(BaseModel):
    """Flattened build state as written to and read from storage"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    ability_scores: Dict[str, int] = Field(default_factory=dict, alias="abilityScores")
    ability_bonuses: Dict[str, List[PersistedAbilityBonus]] = Field(default_factory=dict, alias="abilityBonuses")
    pending_ability_choices: List[PersistedPendingChoice] = Field(default_factory=list, alias="pendingAbilityChoices")
    proficiencies: Dict[str, List[str]] = Field(default_factory=dict)
    proficiency_sources: Dict[str, Dict[str, List[str]]] = Field(default_factory=dict, alias="proficiencySources")
    optional_proficiencies: Dict[str, PersistedOptionalSet] = Field(default_factory=dict, alias="optionalProficiencies")
    features: PersistedFeatures = Field(default_factory=PersistedFeatures)
    race: PersistedSelection = Field(default_factory=PersistedSelection)
    character_class: PersistedSelection = Field(default_factory=PersistedSelection, alias="class")
    background: PersistedSelection = Field(default_factory=PersistedSelection)
    size: str = "M"
    speed: Dict[str, int] = Field(default_factory=lambda: {"walk": 30})
    hit_points: PersistedHitPoints = Field(default_factory=PersistedHitPoints, alias="hitPoints")
    hit_die: int = Field(0, alias="hitDie")
    allowed_sources: List[str] = Field(default_factory=lambda: ["PHB"], alias="allowedSources")
