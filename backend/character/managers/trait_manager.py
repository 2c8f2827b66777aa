"""
Trait Manager - name-keyed racial/class/background traits and racial senses
"""

from typing import Dict, Any
from loguru import logger

from ..build_state import Trait


class TraitManager:
    """Manages traits, darkvision and damage resistances"""

    def __init__(self, character_manager):
        self.character_manager = character_manager

    @property
    def features(self):
        return self.character_manager.state.features

    def add(self, name: str, entry: Any, source: str) -> bool:
        """
        Insert or overwrite a trait by name

        A later add shadows an earlier trait of the same name, whatever its source.

        Args:
            name: Trait name
            entry: Description text, or a dict carrying 'description'
            source: Source tag
        """
        if not name or not source:
            logger.warning(f"Ignoring trait with missing name/source: {name!r}, {source!r}")
            return False

        if isinstance(entry, dict):
            description = entry.get('description', '')
        elif isinstance(entry, list):
            description = '\n'.join(str(part) for part in entry)
        else:
            description = entry or ''

        existing = self.features.traits.get(name)
        if existing and existing.source != source:
            logger.debug(f"Trait '{name}' from {existing.source} shadowed by {source}")

        self.features.traits[name] = Trait(description=str(description), source=source)
        return True

    def clear_by_source(self, source: str) -> int:
        """Remove every trait whose source equals the tag"""
        names = [name for name, trait in self.features.traits.items() if trait.source == source]
        for name in names:
            del self.features.traits[name]
        return len(names)

    def get_traits(self) -> Dict[str, Dict[str, str]]:
        return {
            name: {'description': trait.description, 'source': trait.source}
            for name, trait in self.features.traits.items()
        }

    def set_darkvision(self, distance: int):
        self.features.darkvision = max(0, int(distance or 0))

    def add_resistance(self, resistance: str) -> bool:
        if not resistance:
            return False
        self.features.resistances.add(resistance.lower())
        return True

    def clear_racial_features(self):
        """Reset darkvision and resistances"""
        self.features.darkvision = 0
        self.features.resistances.clear()
