"""
Factory functions for creating properly configured CharacterManager instances.
"""

from typing import Optional
from .build_state import CharacterState
from .character_manager import CharacterManager
from .manager_registry import get_all_manager_specs
from config.build_settings import BuildSettings
import logging

logger = logging.getLogger(__name__)


def create_character_manager(
    state: Optional[CharacterState] = None,
    cache_port=None,
    settings: Optional[BuildSettings] = None
) -> CharacterManager:
    """
    Factory function that creates a fully-configured CharacterManager with all managers registered.

    A fresh character gets every proficiency type initialized and Common granted
    from 'Default'; a restored state is taken as-is.

    Args:
        state: Optional existing build state (e.g. from a persisted record)
        cache_port: Optional ExternalCachePort invalidated on build-source teardown
        settings: Optional engine settings

    Returns:
        CharacterManager instance with all managers registered
    """
    manager = CharacterManager(state=state, cache_port=cache_port, settings=settings)

    # Managers look each other up by name at call time, so all must be present
    for name, manager_class in get_all_manager_specs():
        manager.register_manager(name, manager_class)

    manager.get_manager('proficiency').initialize_structures(grant_default_language=manager.is_new)
    manager.get_manager('optional_proficiency').recombine_all()

    logger.info(f"Created CharacterManager with {len(manager._managers)} managers registered")
    return manager
