"""
Lightweight FastAPI dependencies using the build session registry
"""

import logging
from typing import Annotated
from fastapi import Depends

from character.build_session import BuildSession
from character.character_manager import CharacterManager

logger = logging.getLogger(__name__)


def get_build_session(session_id: int) -> BuildSession:
    """
    Get a build session from the registry

    Args:
        session_id: Session ID (integer)

    Returns:
        BuildSession: Registered session

    Raises:
        SessionNotFoundException: If no session is registered under the id
    """
    # Lazy import - registry module holds global state
    from fastapi_core.session_registry import get_build_session as registry_get

    return registry_get(session_id)


def get_character_manager(session_id: int) -> CharacterManager:
    """CharacterManager of a registered build session"""
    return get_build_session(session_id).character_manager


# FastAPI dependency annotations
BuildSessionDep = Annotated[BuildSession, Depends(get_build_session)]
CharacterManagerDep = Annotated[CharacterManager, Depends(get_character_manager)]
