"""
Pydantic models for the build session API
Request bodies and responses backed by CharacterManager methods
"""

from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field


class SessionInfo(BaseModel):
    """Matches BuildSession.get_info() output"""
    session_id: int
    created_at: str
    has_unsaved_changes: bool = False
    race: str = ""
    class_name: str = Field("", alias="class")
    background: str = ""

    model_config = {"populate_by_name": True}


class SessionCloseResponse(BaseModel):
    success: bool
    session_id: int


class BuildSourceRequest(BaseModel):
    """Rule data to apply; omit rule_data to clear the slot"""
    rule_data: Optional[Dict[str, Any]] = Field(None, description="Race, class or background record")
    sub_data: Optional[Dict[str, Any]] = Field(None, description="Subrace, subclass or variant record")


class BuildSourceResponse(BaseModel):
    """Matches BuildSourceManager.apply() output"""
    success: bool = True
    kind: str
    old: Dict[str, str] = Field(default_factory=dict)
    new: Optional[Dict[str, str]] = None
    removed: Dict[str, List[str]] = Field(default_factory=dict)
    overrides: List[str] = Field(default_factory=list)
    restored: Dict[str, List[str]] = Field(default_factory=dict)
    has_unsaved_changes: bool = True


class OptionalSelectionResponse(BaseModel):
    """Result of a select/deselect with the combined pool afterwards"""
    success: bool
    prof_type: str
    origin: str
    proficiency: str
    pool: Dict[str, Any] = Field(default_factory=dict)
    has_unsaved_changes: bool = False


class ProficiencyEntry(BaseModel):
    name: str
    sources: List[str] = Field(default_factory=list)


class ProficiencyListResponse(BaseModel):
    prof_type: str
    proficiencies: List[ProficiencyEntry] = Field(default_factory=list)


class OptionalPoolResponse(BaseModel):
    prof_type: str
    pool: Dict[str, Any] = Field(default_factory=dict)
    available: Dict[str, List[str]] = Field(default_factory=dict, description="Selectable options per origin")


class AbilitiesResponse(BaseModel):
    ability_scores: Dict[str, int]
    ability_bonuses: Dict[str, List[Dict[str, Any]]]
    effective_ability_scores: Dict[str, int]
    pending_ability_choices: List[Dict[str, Any]] = Field(default_factory=list)


class AbilityChoiceRequest(BaseModel):
    abilities: List[str] = Field(..., description="Distinct abilities, exactly the choice's count")


class AbilityChoiceResponse(BaseModel):
    success: bool
    index: int
    pending_ability_choices: List[Dict[str, Any]] = Field(default_factory=list)
    has_unsaved_changes: bool = False


class ExportResponse(BaseModel):
    session_id: int
    character: Dict[str, Any]


class ImportRequest(BaseModel):
    character: Dict[str, Any] = Field(..., description="Record produced by the export endpoint")
