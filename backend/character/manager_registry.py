"""
Central registry for all character managers.
Defines the standard set of managers and their registration order.
"""

from typing import Type, List, Tuple, Optional
from .managers import (
    AbilityBonusManager,
    TraitManager,
    ProficiencyManager,
    OptionalProficiencyManager,
    RefundManager,
    BuildSourceManager,
)

# Define all managers and their registration order
# Ledgers first, then the managers that reconcile and orchestrate them
MANAGER_REGISTRY: List[Tuple[str, Type]] = [
    # Leaf ledgers
    ('ability_bonus', AbilityBonusManager),   # Emits ABILITY_BONUS_CHANGED events
    ('trait', TraitManager),
    ('proficiency', ProficiencyManager),      # Emits PROFICIENCY_ADDED/REMOVED events

    # Choice pools and reconciliation
    ('optional_proficiency', OptionalProficiencyManager),  # Emits OPTIONAL_* events
    ('refund', RefundManager),                # Called by proficiency on fixed skill grants

    # Orchestration
    ('build_source', BuildSourceManager),     # Emits BUILD_SOURCE_APPLIED, REFRESH_REQUESTED
]


def get_all_manager_specs() -> List[Tuple[str, Type]]:
    """
    Get all manager specifications for registration.

    Returns:
        List of (name, class) tuples in proper registration order
    """
    return MANAGER_REGISTRY.copy()


def get_manager_names() -> List[str]:
    """
    Get just the names of all registered managers.

    Returns:
        List of manager names
    """
    return [name for name, _ in MANAGER_REGISTRY]


def get_manager_class(name: str) -> Optional[Type]:
    """
    Get the manager class for a given name.

    Args:
        name: Manager name

    Returns:
        Manager class or None if not found
    """
    for mgr_name, mgr_class in MANAGER_REGISTRY:
        if mgr_name == name:
            return mgr_class
    return None
