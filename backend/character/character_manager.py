"""
CharacterManager - aggregate root of one character build
Owns the build state, registers the ledger managers and exposes the mutation/read API
"""

from typing import Dict, List, Any, Optional, Type, Callable, Tuple
import copy
import time
import logging
from dataclasses import dataclass

from .build_state import CharacterState
from .events import EventEmitter, EventType, CharacterUpdatedEvent
from .exceptions import BuildEngineError
from .proficiency_constants import PROFICIENCY_TYPES
from .utils.normalization import ABILITIES, normalize_ability_name
from config.build_settings import BuildSettings, get_build_settings

logger = logging.getLogger(__name__)


@dataclass
class Transaction:
    """Represents a set of character changes that can be committed or rolled back"""
    id: str
    manager: 'CharacterManager'
    original_state: CharacterState
    changes: List[Dict[str, Any]]
    pending_events: List[Tuple[Any, Any]]
    timestamp: float

    def __init__(self, manager: 'CharacterManager'):
        self.id = f"txn_{int(time.time() * 1000)}"
        self.manager = manager
        self.original_state = copy.deepcopy(manager.state)
        self.changes = []
        # Events are held until commit; a rollback discards them
        self.pending_events = []
        self.timestamp = time.time()

    def add_change(self, change_type: str, details: Dict[str, Any]):
        """Record a change in this transaction"""
        self.changes.append({
            'type': change_type,
            'details': details,
            'timestamp': time.time()
        })

    def rollback(self):
        """Restore character to state before transaction"""
        logger.info(f"Rolling back transaction {self.id}")
        self.manager.state = self.original_state

    def commit(self) -> Dict[str, Any]:
        """Finalize the transaction and return summary"""
        logger.debug(f"Committing transaction {self.id} with {len(self.changes)} changes")
        return {
            'transaction_id': self.id,
            'changes': self.changes,
            'duration': time.time() - self.timestamp
        }


class CharacterManager(EventEmitter):
    """
    Character build aggregate

    Managers reach the state through character_manager.state, so a rollback
    that swaps the state object is seen by all of them.
    """

    def __init__(self, state: Optional[CharacterState] = None, cache_port=None,
                 settings: Optional[BuildSettings] = None):
        """
        Initialize the character manager

        Args:
            state: Existing build state (e.g. from a persisted record); a fresh one when omitted
            cache_port: ExternalCachePort invalidated on teardown; no-op when omitted
            settings: Engine settings; process settings when omitted
        """
        self.settings = settings or get_build_settings()
        super().__init__(history_limit=self.settings.event_history_limit)

        self.is_new = state is None
        if state is None:
            state = CharacterState(allowed_sources=set(self.settings.default_sources))
        self.state = state

        if cache_port is None:
            from .managers.build_source_manager import NullCachePort
            cache_port = NullCachePort()
        self.cache_port = cache_port

        # Manager registry
        self._managers: Dict[str, Any] = {}
        self._manager_classes: Dict[str, Type] = {}

        # Transaction support
        self._current_transaction: Optional[Transaction] = None
        self._transaction_history: List[Transaction] = []

    def register_manager(self, name: str, manager_class: Type,
                         on_register: Optional[Callable] = None):
        """
        Register a subsystem manager

        Args:
            name: Manager name (e.g., 'proficiency', 'refund')
            manager_class: Manager class to instantiate with this CharacterManager
            on_register: Optional callback to call after registration
        """
        if not callable(manager_class):
            raise ValueError(f"Manager class {name} is not callable")

        try:
            manager_instance = manager_class(self)
        except Exception as e:
            logger.error(f"Failed to create {name} manager: {e}")
            raise RuntimeError(f"Could not create {name} manager: {e}")

        self._manager_classes[name] = manager_class
        self._managers[name] = manager_instance

        if on_register:
            try:
                on_register(manager_instance)
            except Exception as e:
                logger.error(f"Error in on_register hook for {name}: {e}")

        logger.debug(f"Registered {name} manager")

    def get_manager(self, name: str):
        """
        Get a registered manager by name

        Args:
            name: Manager name

        Returns:
            Manager instance or None if not registered
        """
        return self._managers.get(name)

    def _require_manager(self, name: str):
        manager = self._managers.get(name)
        if manager is None:
            raise RuntimeError(f"Manager '{name}' is not registered")
        return manager

    def get_all_managers(self) -> Dict[str, Any]:
        return dict(self._managers)

    # Transactions

    def begin_transaction(self) -> Transaction:
        """Start a new transaction for atomic changes"""
        if self._current_transaction:
            raise RuntimeError("Transaction already in progress")

        self._current_transaction = Transaction(self)
        logger.debug(f"Started transaction {self._current_transaction.id}")
        return self._current_transaction

    def commit_transaction(self) -> Dict[str, Any]:
        """Commit the current transaction"""
        if not self._current_transaction:
            raise RuntimeError("No transaction in progress")

        transaction = self._current_transaction
        result = transaction.commit()
        self._transaction_history.append(transaction)
        self._current_transaction = None

        for event_type, data in transaction.pending_events:
            self.emit(event_type, data)
        transaction.pending_events = []
        return result

    def rollback_transaction(self):
        """Rollback the current transaction"""
        if not self._current_transaction:
            raise RuntimeError("No transaction in progress")

        transaction = self._current_transaction
        transaction.rollback()
        if transaction.pending_events:
            logger.debug(f"Discarding {len(transaction.pending_events)} events of transaction {transaction.id}")
        transaction.pending_events = []
        self._current_transaction = None

    @property
    def in_transaction(self) -> bool:
        return self._current_transaction is not None

    def emit(self, event_type, data=None):
        """Deliver an event now, or when the open transaction commits"""
        transaction = getattr(self, '_current_transaction', None)
        if transaction is not None:
            transaction.pending_events.append((event_type, data))
            return
        super().emit(event_type, data)

    def _contract_violation(self, error: BuildEngineError, default: Any):
        """Raise in strict mode, otherwise log and return default"""
        if self.settings.strict_contracts:
            raise error
        logger.error(f"Contract violation: {error.message}")
        return default

    def _mark_updated(self, reason: str):
        self.emit(CharacterUpdatedEvent(
            event_type=EventType.CHARACTER_UPDATED,
            source_manager='character',
            timestamp=time.time(),
            reason=reason
        ))

    # Mutation API

    def apply_build_source(self, kind: str, rule_data: Optional[Dict[str, Any]],
                           sub_data: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Tear down and re-derive one build-source slot as a single transaction

        Args:
            kind: 'race', 'class' or 'background'
            rule_data: Rule-data record, or None to clear the slot
            sub_data: Optional subrace/subclass/variant record

        Returns:
            Apply summary, or None if the kind was rejected in non-strict mode
        """
        from .managers.build_source_manager import resolve_slot
        try:
            resolve_slot(kind)
        except BuildEngineError as e:
            return self._contract_violation(e, None)

        transaction = self.begin_transaction()
        try:
            result = self._require_manager('build_source').apply(kind, rule_data, sub_data)
            transaction.add_change('build_source', {'kind': kind, 'new': result.get('new')})
        except Exception as e:
            logger.error(f"Applying {kind} failed, restoring previous state: {e}")
            self.rollback_transaction()
            raise
        result['transaction'] = self.commit_transaction()
        return result

    def select_optional_proficiency(self, prof_type: str, origin: str, name: str) -> bool:
        try:
            return self._require_manager('optional_proficiency').select(prof_type, origin, name)
        except BuildEngineError as e:
            return self._contract_violation(e, False)

    def deselect_optional_proficiency(self, prof_type: str, origin: str, name: str) -> bool:
        try:
            return self._require_manager('optional_proficiency').deselect(prof_type, origin, name)
        except BuildEngineError as e:
            return self._contract_violation(e, False)

    def add_ability_bonus(self, ability: str, value: int, source: str) -> bool:
        added = self._require_manager('ability_bonus').add(ability, value, source)
        if added:
            self._mark_updated('ability_bonus_added')
        return added

    def clear_ability_bonuses(self, source: str) -> int:
        removed = self._require_manager('ability_bonus').clear_by_source(source)
        if removed:
            self._mark_updated('ability_bonuses_cleared')
        return removed

    def resolve_ability_choice(self, index: int, abilities: List[str]) -> bool:
        resolved = self._require_manager('ability_bonus').resolve_pending_choice(index, abilities)
        if resolved:
            self._mark_updated('ability_choice_resolved')
        return resolved

    def set_ability_score(self, ability: str, value: int) -> bool:
        """Set a base ability score"""
        canonical = normalize_ability_name(ability)
        if canonical is None or isinstance(value, bool) or not isinstance(value, int):
            logger.warning(f"Ignoring invalid base score {ability!r}={value!r}")
            return False
        self.state.ability_scores[canonical] = value
        self._mark_updated('ability_score_set')
        return True

    def add_allowed_source(self, source: str) -> bool:
        if not source or not source.strip():
            logger.warning("Ignoring empty allowed source")
            return False
        key = source.strip().upper()
        if key in self.state.allowed_sources:
            return False
        self.state.allowed_sources.add(key)
        self._mark_updated('allowed_sources_changed')
        return True

    def remove_allowed_source(self, source: str) -> bool:
        key = (source or '').strip().upper()
        if key not in self.state.allowed_sources:
            return False
        self.state.allowed_sources.discard(key)
        self._mark_updated('allowed_sources_changed')
        return True

    # Read API

    def get_proficiencies_with_sources(self, prof_type: str) -> List[Dict[str, Any]]:
        return self._require_manager('proficiency').get_proficiencies_with_sources(prof_type)

    def get_combined_optional_pool(self, prof_type: str) -> Dict[str, Any]:
        return self._require_manager('optional_proficiency').get_combined_pool(prof_type)

    def is_proficiency_available_for_selection(self, prof_type: str, name: str) -> bool:
        return self._require_manager('optional_proficiency').is_available_for_selection(prof_type, name)

    def has_proficiency(self, prof_type: str, name: str) -> bool:
        return self._require_manager('proficiency').has_proficiency(prof_type, name)

    def get_ability_bonuses(self, ability: Optional[str] = None):
        """Bonuses with sources for one ability, or for all six"""
        manager = self._require_manager('ability_bonus')
        if ability is None:
            return manager.get_all_bonuses()
        return manager.get_bonuses_with_sources(ability)

    def get_effective_ability_scores(self) -> Dict[str, int]:
        manager = self._require_manager('ability_bonus')
        return {ability: manager.get_effective_score(ability) for ability in ABILITIES}

    def get_traits(self) -> Dict[str, Dict[str, str]]:
        return self._require_manager('trait').get_traits()

    def get_pending_ability_choices(self) -> List[Dict[str, Any]]:
        return self._require_manager('ability_bonus').get_pending_choices()

    def get_build_summary(self) -> Dict[str, Any]:
        """
        Snapshot of everything the read API exposes

        Returns:
            Dict with selections, scalars, abilities, proficiencies, pools and features
        """
        state = self.state
        return {
            'name': state.name,
            'race': state.race.to_dict(),
            'class': state.character_class.to_dict(),
            'background': state.background.to_dict(),
            'size': state.size,
            'speed': dict(state.speed),
            'hit_points': dict(state.hit_points),
            'hit_die': state.hit_die,
            'allowed_sources': sorted(state.allowed_sources),
            'ability_scores': dict(state.ability_scores),
            'ability_bonuses': self.get_ability_bonuses(),
            'effective_ability_scores': self.get_effective_ability_scores(),
            'pending_ability_choices': self.get_pending_ability_choices(),
            'proficiencies': {
                prof_type: self.get_proficiencies_with_sources(prof_type)
                for prof_type in PROFICIENCY_TYPES
            },
            'optional_proficiencies': {
                prof_type: self.get_combined_optional_pool(prof_type)
                for prof_type in state.optional_proficiencies
            },
            'features': {
                'darkvision': state.features.darkvision,
                'resistances': sorted(state.features.resistances),
                'traits': self.get_traits(),
            },
        }
