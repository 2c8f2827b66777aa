"""
FastAPI Build Session Registry

Manages long-lived character build sessions across multiple requests.
Each session owns ONE CharacterManager and persists until explicitly closed.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from character.build_session import BuildSession
from .exceptions import SessionNotFoundException, BuildSessionException

logger = logging.getLogger(__name__)

# Global registry of active build sessions
_build_sessions: Dict[int, BuildSession] = {}
_registry_lock = threading.Lock()

# Integer ID management for cleaner URLs
_next_session_id = 1


def _allocate_id() -> int:
    global _next_session_id
    session_id = _next_session_id
    _next_session_id += 1
    return session_id


def create_build_session(record: Optional[Dict[str, Any]] = None) -> BuildSession:
    """
    Create and register a new build session.

    Args:
        record: Optional persisted character record to restore

    Returns:
        BuildSession instance

    Raises:
        BuildSessionException: If the session could not be created
    """
    with _registry_lock:
        session_id = _allocate_id()
        try:
            if record is None:
                session = BuildSession(session_id)
            else:
                session = BuildSession.from_record(session_id, record)
        except Exception as e:
            logger.error(f"Failed to create build session: {e}", exc_info=True)
            raise BuildSessionException(f"Unable to create build session: {str(e)}")

        _build_sessions[session_id] = session
        logger.info(f"Created and registered build session {session_id}")
        return session


def get_build_session(session_id: int) -> BuildSession:
    """
    Get a registered build session.

    Raises:
        SessionNotFoundException: If no session is registered under the id
    """
    with _registry_lock:
        session = _build_sessions.get(session_id)
        if session is None or session.character_manager is None:
            _build_sessions.pop(session_id, None)
            raise SessionNotFoundException(session_id)
        return session


def close_build_session(session_id: int) -> bool:
    """
    Close and cleanup a build session.

    Args:
        session_id: Session id

    Returns:
        True if session was closed, False if no session existed
    """
    with _registry_lock:
        session = _build_sessions.pop(session_id, None)
    if session is None:
        logger.debug(f"No session to close for id {session_id}")
        return False
    session.close()
    logger.info(f"Closed build session {session_id}")
    return True


def has_active_session(session_id: int) -> bool:
    with _registry_lock:
        return session_id in _build_sessions


def get_active_sessions() -> List[Dict[str, Any]]:
    """Info for every open session"""
    with _registry_lock:
        sessions = list(_build_sessions.values())
    return [session.get_info() for session in sessions]


def close_all_sessions() -> int:
    """Close every session; returns how many were closed"""
    with _registry_lock:
        sessions = list(_build_sessions.values())
        _build_sessions.clear()
    for session in sessions:
        session.close()
    if sessions:
        logger.info(f"Closed {len(sessions)} build sessions")
    return len(sessions)
