"""
FastAPI Pydantic models
Persisted character record and build session API bodies
"""

from .persisted_models import (
    PersistedCharacter,
    PersistedAbilityBonus,
    PersistedPendingChoice,
    PersistedPool,
    PersistedOptionalSet,
    PersistedTrait,
    PersistedFeatures,
    PersistedSelection,
    PersistedHitPoints,
)

from .build_models import (
    SessionInfo,
    SessionCloseResponse,
    BuildSourceRequest,
    BuildSourceResponse,
    OptionalSelectionResponse,
    ProficiencyEntry,
    ProficiencyListResponse,
    OptionalPoolResponse,
    AbilitiesResponse,
    AbilityChoiceRequest,
    AbilityChoiceResponse,
    ExportResponse,
    ImportRequest,
)

__all__ = [
    'PersistedCharacter',
    'PersistedAbilityBonus',
    'PersistedPendingChoice',
    'PersistedPool',
    'PersistedOptionalSet',
    'PersistedTrait',
    'PersistedFeatures',
    'PersistedSelection',
    'PersistedHitPoints',
    'SessionInfo',
    'SessionCloseResponse',
    'BuildSourceRequest',
    'BuildSourceResponse',
    'OptionalSelectionResponse',
    'ProficiencyEntry',
    'ProficiencyListResponse',
    'OptionalPoolResponse',
    'AbilitiesResponse',
    'AbilityChoiceRequest',
    'AbilityChoiceResponse',
    'ExportResponse',
    'ImportRequest',
]
