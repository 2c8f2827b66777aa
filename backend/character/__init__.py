from .character_manager import CharacterManager
from .build_state import CharacterState
from .events import EventEmitter, EventType, EventData
from .factory import create_character_manager
from .manager_registry import get_all_manager_specs, get_manager_names, get_manager_class

__all__ = [
    'CharacterManager',
    'CharacterState',
    'EventEmitter',
    'EventType',
    'EventData',
    'create_character_manager',
    'get_all_manager_specs',
    'get_manager_names',
    'get_manager_class'
]
