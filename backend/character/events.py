"""
Event system for character build state
Provides pub/sub pattern for communication between managers and external observers
"""

from typing import Dict, List, Callable, Any, Optional
from dataclasses import dataclass, field
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Standard event types for character build state"""
    PROFICIENCY_ADDED = 'proficiency_added'
    PROFICIENCY_REMOVED_BY_SOURCE = 'proficiency_removed_by_source'
    PROFICIENCY_REFUNDED = 'proficiency_refunded'
    OPTIONAL_CONFIGURED = 'optional_configured'
    OPTIONAL_SELECTED = 'optional_selected'
    OPTIONAL_DESELECTED = 'optional_deselected'
    ABILITY_BONUS_CHANGED = 'ability_bonus_changed'
    BUILD_SOURCE_APPLIED = 'build_source_applied'
    REFRESH_REQUESTED = 'refresh_requested'  # External caches should resynchronize
    CHARACTER_UPDATED = 'character_updated'  # Generic change event for unsaved-changes tracking


@dataclass
class EventData:
    """Base class for event data"""
    event_type: EventType
    source_manager: str
    timestamp: float

    def validate(self) -> bool:
        """Validate event data"""
        return True


@dataclass
class ProficiencyAddedEvent(EventData):
    """A proficiency name gained a source tag"""
    prof_type: str
    proficiency: str
    source: str
    was_new: bool = False

    def __post_init__(self):
        self.event_type = EventType.PROFICIENCY_ADDED

    def validate(self) -> bool:
        return bool(self.prof_type and self.proficiency and self.source)


@dataclass
class ProficiencyRemovedEvent(EventData):
    """Every entry tagged with a source was retracted"""
    source: str
    removed: Dict[str, List[str]] = field(default_factory=dict)

    def __post_init__(self):
        self.event_type = EventType.PROFICIENCY_REMOVED_BY_SOURCE


@dataclass
class ProficiencyRefundedEvent(EventData):
    """An optional selection was retracted because a fixed grant made it redundant"""
    prof_type: str
    proficiency: str
    origins: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.event_type = EventType.PROFICIENCY_REFUNDED


@dataclass
class OptionalProficiencyEvent(EventData):
    """Optional pool configured, selected or deselected"""
    prof_type: str
    origin: str
    action: str  # 'configured', 'selected' or 'deselected'
    proficiency: Optional[str] = None
    allowed: Optional[int] = None

    def __post_init__(self):
        if self.action == 'selected':
            self.event_type = EventType.OPTIONAL_SELECTED
        elif self.action == 'deselected':
            self.event_type = EventType.OPTIONAL_DESELECTED
        else:
            self.event_type = EventType.OPTIONAL_CONFIGURED


@dataclass
class AbilityBonusChangedEvent(EventData):
    """Ability bonus ledger mutated"""
    action: str  # 'added', 'removed', 'cleared', 'choice_resolved'
    source: str
    ability: Optional[str] = None
    value: Optional[int] = None

    def __post_init__(self):
        self.event_type = EventType.ABILITY_BONUS_CHANGED


@dataclass
class BuildSourceAppliedEvent(EventData):
    """A build source slot finished teardown and (optional) setup"""
    kind: str
    old_name: str
    new_name: str
    sub_name: str = ''
    cleared: bool = False

    def __post_init__(self):
        self.event_type = EventType.BUILD_SOURCE_APPLIED


@dataclass
class RefreshRequestedEvent(EventData):
    """External views holding derived caches should resynchronize"""
    kind: str
    phase: str  # 'teardown' or 'setup'

    def __post_init__(self):
        self.event_type = EventType.REFRESH_REQUESTED


@dataclass
class CharacterUpdatedEvent(EventData):
    """Something observable on the character changed"""
    reason: str = ''

    def __post_init__(self):
        self.event_type = EventType.CHARACTER_UPDATED


class EventEmitter:
    """Base class for objects that can emit and listen to events"""

    def __init__(self, history_limit: int = 0):
        self._observers: Dict[EventType, List[Callable]] = {}
        self._event_history: List[EventData] = []
        self._history_limit = history_limit

    def on(self, event_type: EventType, callback: Callable[[EventData], None]):
        """
        Register a callback for an event type

        Args:
            event_type: The type of event to listen for
            callback: Function to call when event is emitted
        """
        if event_type not in self._observers:
            self._observers[event_type] = []
        self._observers[event_type].append(callback)
        logger.debug(f"Registered callback for {event_type.value}")

    def off(self, event_type: EventType, callback: Callable[[EventData], None]):
        """
        Unregister a callback for an event type

        Args:
            event_type: The type of event
            callback: The callback to remove
        """
        if event_type in self._observers:
            try:
                self._observers[event_type].remove(callback)
                logger.debug(f"Unregistered callback for {event_type.value}")
            except ValueError:
                pass  # Callback not in list

    def emit(self, event_type, data=None):
        """
        Emit an event to all registered observers

        Args:
            event_type: EventType or EventData. If EventType, data should be provided
            data: Optional dict of event data if event_type is EventType
        """
        if isinstance(event_type, EventData):
            event_data = event_type
            if not event_data.validate():
                logger.error(f"Invalid event data for {event_data.event_type}")
                return
        else:
            event_data = EventData(
                event_type=event_type,
                source_manager=type(self).__name__,
                timestamp=0
            )

        self._event_history.append(event_data)
        if self._history_limit and len(self._event_history) > self._history_limit:
            del self._event_history[:len(self._event_history) - self._history_limit]

        event_key = event_data.event_type

        # Copy so observers may unregister themselves while being notified
        for callback in list(self._observers.get(event_key, [])):
            try:
                if isinstance(event_type, EventData):
                    callback(event_data)
                else:
                    callback(data or {})
            except Exception as e:
                logger.error(f"Error in event callback for {event_key.value}: {e}")

    def emit_batch(self, events: List[EventData]):
        """
        Emit multiple events in order

        Args:
            events: List of events to emit
        """
        for event in events:
            self.emit(event)

    def get_event_history(self, event_type: Optional[EventType] = None) -> List[EventData]:
        """
        Get history of emitted events

        Args:
            event_type: Optional filter by event type

        Returns:
            List of event data
        """
        if event_type:
            return [e for e in self._event_history if e.event_type == event_type]
        return self._event_history.copy()

    def clear_event_history(self):
        """Clear the event history"""
        self._event_history.clear()
