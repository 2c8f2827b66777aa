from .ability_bonus_manager import AbilityBonusManager
from .trait_manager import TraitManager
from .proficiency_manager import ProficiencyManager
from .optional_proficiency_manager import OptionalProficiencyManager
from .refund_manager import RefundManager
from .build_source_manager import BuildSourceManager, ExternalCachePort, NullCachePort

__all__ = [
    'AbilityBonusManager',
    'TraitManager',
    'ProficiencyManager',
    'OptionalProficiencyManager',
    'RefundManager',
    'BuildSourceManager',
    'ExternalCachePort',
    'NullCachePort',
]
