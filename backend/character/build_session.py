"""
Character Build Session

One session owns one CharacterManager for the lifetime of a build. It tracks
unsaved changes from engine events and forwards refresh signals to view
listeners once the engine call that produced them has finished.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from config.build_settings import BuildSettings, get_build_settings
from .build_state import CharacterState
from .character_manager import CharacterManager
from .events import EventType, EventData
from .factory import create_character_manager
from .refresh_debouncer import RefreshDebouncer
from .serializer import to_persisted, from_persisted

logger = logging.getLogger(__name__)

# Events that change what a saved record would contain
DIRTY_EVENTS = (
    EventType.CHARACTER_UPDATED,
    EventType.PROFICIENCY_ADDED,
    EventType.PROFICIENCY_REFUNDED,
    EventType.OPTIONAL_SELECTED,
    EventType.OPTIONAL_DESELECTED,
    EventType.ABILITY_BONUS_CHANGED,
)


class BuildSession:
    """
    High-level session for one character build

    Refresh listeners are called with the slot kind ('race', 'class',
    'background') after apply_build_source returns. A repeat for the same kind
    inside the settings' refresh window is suppressed when it would show the
    listener the same state again, so a listener that re-applies another slot
    cannot cascade.
    """

    def __init__(self, session_id: int, state: Optional[CharacterState] = None,
                 settings: Optional[BuildSettings] = None, cache_port=None):
        """
        Initialize a build session

        Args:
            session_id: Registry id of the session
            state: Optional restored build state
            settings: Optional engine settings
            cache_port: Optional ExternalCachePort for derived view caches
        """
        self.session_id = session_id
        self.settings = settings or get_build_settings()
        self.created_at = datetime.now()
        self.is_dirty = False

        self.character_manager: Optional[CharacterManager] = create_character_manager(
            state=state, cache_port=cache_port, settings=self.settings
        )
        self.debouncer = RefreshDebouncer(self.settings.refresh_window_ms)
        self._refresh_listeners: List[Callable[[str], None]] = []
        self._pending_refresh: List[str] = []

        for event_type in DIRTY_EVENTS:
            self.character_manager.on(event_type, self._mark_dirty)
        self.character_manager.on(EventType.REFRESH_REQUESTED, self._queue_refresh)

        logger.info(f"Build session {session_id} ready")

    @classmethod
    def from_record(cls, session_id: int, record: Dict[str, Any],
                    settings: Optional[BuildSettings] = None) -> 'BuildSession':
        """Create a session from a persisted character record"""
        return cls(session_id, state=from_persisted(record), settings=settings)

    def _mark_dirty(self, event: EventData):
        self.is_dirty = True

    def _queue_refresh(self, event: EventData):
        kind = getattr(event, 'kind', None)
        if kind and kind not in self._pending_refresh:
            self._pending_refresh.append(kind)

    def on_refresh(self, callback: Callable[[str], None]):
        """Register a view listener called with the refreshed slot kind"""
        self._refresh_listeners.append(callback)

    def flush_refresh(self) -> List[str]:
        """
        Deliver queued refresh signals

        A kind is skipped only when it was delivered inside the refresh window
        and the persisted state has not changed since.

        Returns:
            The kinds actually delivered
        """
        delivered = []
        while self._pending_refresh:
            kind = self._pending_refresh.pop(0)
            if self.character_manager is None:
                break
            fingerprint = to_persisted(self.character_manager.state)
            if not self.debouncer.should_run(kind, fingerprint):
                logger.debug(f"Suppressed redundant refresh for {kind}")
                continue
            delivered.append(kind)
            for listener in list(self._refresh_listeners):
                try:
                    listener(kind)
                except Exception as e:
                    logger.error(f"Error in refresh listener for {kind}: {e}")
        return delivered

    def apply_build_source(self, kind: str, rule_data: Optional[Dict[str, Any]],
                           sub_data: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Apply through the engine, then deliver refresh signals"""
        try:
            return self.character_manager.apply_build_source(kind, rule_data, sub_data)
        finally:
            self.flush_refresh()

    def has_unsaved_changes(self) -> bool:
        """Check for unsaved changes"""
        return self.is_dirty

    def export(self, mark_saved: bool = True) -> Dict[str, Any]:
        """Persisted record of the current state"""
        record = to_persisted(self.character_manager.state)
        if mark_saved:
            self.is_dirty = False
        return record

    def get_info(self) -> Dict[str, Any]:
        """Get session information"""
        state = self.character_manager.state
        return {
            'session_id': self.session_id,
            'created_at': self.created_at.isoformat(),
            'has_unsaved_changes': self.is_dirty,
            'race': state.race.name,
            'class': state.character_class.name,
            'background': state.background.name,
        }

    def close(self):
        """Close the session"""
        if self.is_dirty:
            logger.warning(f"Closing build session {self.session_id} with unsaved changes")
        self._refresh_listeners.clear()
        self.character_manager = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
