"""
FastAPI router for character build sessions.
Thin surface over CharacterManager: build sources, optional choices, abilities, export/import.
"""

from fastapi import APIRouter, status
import logging

from fastapi_models import (
    SessionInfo, SessionCloseResponse, BuildSourceRequest, BuildSourceResponse,
    OptionalSelectionResponse, ProficiencyListResponse, OptionalPoolResponse,
    AbilitiesResponse, AbilityChoiceRequest, AbilityChoiceResponse,
    ExportResponse, ImportRequest
)
from fastapi_core.exceptions import SessionNotFoundException, ValidationException
from .dependencies import BuildSessionDep, CharacterManagerDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Build"])


@router.post("/sessions", response_model=SessionInfo, status_code=status.HTTP_201_CREATED)
def create_session():
    """Start a new, empty character build."""
    from fastapi_core.session_registry import create_build_session

    session = create_build_session()
    return SessionInfo(**session.get_info())


@router.post("/sessions/import", response_model=SessionInfo, status_code=status.HTTP_201_CREATED)
def import_session(request: ImportRequest):
    """
    Start a build session from an exported character record.

    Records that do not have the persisted shape are rejected with 400.
    """
    from pydantic import ValidationError
    from fastapi_models import PersistedCharacter
    from fastapi_core.session_registry import create_build_session

    try:
        PersistedCharacter.model_validate(request.character)
    except ValidationError as e:
        raise ValidationException(f"Invalid character record: {e.error_count()} errors", field="character")

    session = create_build_session(record=request.character)
    return SessionInfo(**session.get_info())


@router.get("/sessions")
def list_sessions():
    """Info for every open build session."""
    from fastapi_core.session_registry import get_active_sessions

    return {"sessions": get_active_sessions()}


@router.get("/sessions/{session_id}")
def get_session_summary(session_id: int, session: BuildSessionDep):
    """Full build summary of a session."""
    summary = session.character_manager.get_build_summary()
    summary['has_unsaved_changes'] = session.has_unsaved_changes()
    return summary


@router.delete("/sessions/{session_id}", response_model=SessionCloseResponse)
def close_session(session_id: int):
    """Close a build session and discard its state."""
    from fastapi_core.session_registry import close_build_session

    if not close_build_session(session_id):
        raise SessionNotFoundException(session_id)
    return SessionCloseResponse(success=True, session_id=session_id)


@router.post("/sessions/{session_id}/build-sources/{kind}", response_model=BuildSourceResponse)
def apply_build_source(session_id: int, kind: str, request: BuildSourceRequest, session: BuildSessionDep):
    """
    Apply race, class or background rule data.

    - **rule_data**: record to apply; omit to clear the slot
    - **sub_data**: optional subrace, subclass or background variant

    Returns what the teardown removed and what the setup applied.
    """
    result = session.apply_build_source(kind, request.rule_data, request.sub_data)
    if result is None:
        raise ValidationException(f"Unknown build source kind: {kind}", field="kind")

    logger.info(f"Session {session_id}: applied {kind} {(result.get('new') or {}).get('name', '<cleared>')}")
    return BuildSourceResponse(
        kind=result['kind'],
        old=result['old'],
        new=result['new'],
        removed=result['removed'],
        overrides=result['overrides'],
        restored=result['restored'],
        has_unsaved_changes=session.has_unsaved_changes()
    )


@router.post("/sessions/{session_id}/optional/{prof_type}/{origin}/{name}",
             response_model=OptionalSelectionResponse)
def select_optional_proficiency(session_id: int, prof_type: str, origin: str, name: str,
                                session: BuildSessionDep):
    """Select an optional proficiency; success is false when not offered or the pool is full."""
    manager = session.character_manager
    success = manager.select_optional_proficiency(prof_type, origin, name)
    return OptionalSelectionResponse(
        success=success,
        prof_type=prof_type,
        origin=origin,
        proficiency=name,
        pool=manager.get_combined_optional_pool(prof_type),
        has_unsaved_changes=session.has_unsaved_changes()
    )


@router.delete("/sessions/{session_id}/optional/{prof_type}/{origin}/{name}",
               response_model=OptionalSelectionResponse)
def deselect_optional_proficiency(session_id: int, prof_type: str, origin: str, name: str,
                                  session: BuildSessionDep):
    """Deselect an optional proficiency."""
    manager = session.character_manager
    success = manager.deselect_optional_proficiency(prof_type, origin, name)
    return OptionalSelectionResponse(
        success=success,
        prof_type=prof_type,
        origin=origin,
        proficiency=name,
        pool=manager.get_combined_optional_pool(prof_type),
        has_unsaved_changes=session.has_unsaved_changes()
    )


@router.get("/sessions/{session_id}/proficiencies/{prof_type}", response_model=ProficiencyListResponse)
def get_proficiencies(session_id: int, prof_type: str, manager: CharacterManagerDep):
    """Granted proficiencies of a type with their source tags."""
    return ProficiencyListResponse(
        prof_type=prof_type,
        proficiencies=manager.get_proficiencies_with_sources(prof_type)
    )


@router.get("/sessions/{session_id}/optional/{prof_type}", response_model=OptionalPoolResponse)
def get_optional_pool(session_id: int, prof_type: str, manager: CharacterManagerDep):
    """Combined optional pool of a type plus the options still selectable per origin."""
    pool = manager.get_combined_optional_pool(prof_type)
    if not pool:
        raise ValidationException(f"No optional pools for proficiency type: {prof_type}", field="prof_type")

    optional_manager = manager.get_manager('optional_proficiency')
    return OptionalPoolResponse(
        prof_type=prof_type,
        pool=pool,
        available={
            origin: optional_manager.get_available_options(prof_type, origin)
            for origin in ('race', 'class', 'background')
        }
    )


@router.get("/sessions/{session_id}/abilities", response_model=AbilitiesResponse)
def get_abilities(session_id: int, manager: CharacterManagerDep):
    """Base scores, bonuses with sources, effective scores and pending choices."""
    return AbilitiesResponse(
        ability_scores=dict(manager.state.ability_scores),
        ability_bonuses=manager.get_ability_bonuses(),
        effective_ability_scores=manager.get_effective_ability_scores(),
        pending_ability_choices=manager.get_pending_ability_choices()
    )


@router.post("/sessions/{session_id}/abilities/choices/{index}", response_model=AbilityChoiceResponse)
def resolve_ability_choice(session_id: int, index: int, request: AbilityChoiceRequest,
                           session: BuildSessionDep):
    """Resolve a pending ability choice; success is false for an invalid pick."""
    manager = session.character_manager
    success = manager.resolve_ability_choice(index, request.abilities)
    return AbilityChoiceResponse(
        success=success,
        index=index,
        pending_ability_choices=manager.get_pending_ability_choices(),
        has_unsaved_changes=session.has_unsaved_changes()
    )


@router.get("/sessions/{session_id}/export", response_model=ExportResponse)
def export_session(session_id: int, session: BuildSessionDep):
    """Persisted character record; clears the unsaved-changes flag."""
    return ExportResponse(session_id=session_id, character=session.export())
