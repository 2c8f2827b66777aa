"""
Rule Data Parser - Converts static race/class/background records into grants

Pure derivation: no character state is read or written here. Malformed
entries are skipped with a warning so one bad record cannot abort an apply.
Named rule exceptions are layered on top in character/rule_exceptions.py.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from ..proficiency_constants import (
    STANDARD_OPTIONS, ARTISAN_TOOLS, MUSICAL_INSTRUMENT, ARMOR_NAMES, WEAPON_NAMES,
    OPTIONAL_PROFICIENCY_TYPES
)
from .normalization import (
    ABILITIES, normalize_ability_name, normalize_for_lookup, find_matching,
    unique_names, strip_rule_tags, unpack_uid, display_case
)

# Top-level rule-data keys holding 5e-style proficiency blocks
PROFICIENCY_BLOCK_KEYS = {
    'skillProficiencies': 'skills',
    'languageProficiencies': 'languages',
    'toolProficiencies': 'tools',
    'weaponProficiencies': 'weapons',
    'armorProficiencies': 'armor',
}

# Keys inside a class's startingProficiencies
STARTING_PROFICIENCY_KEYS = {
    'armor': 'armor',
    'weapons': 'weapons',
    'toolProficiencies': 'tools',
    'tools': 'tools',
    'skills': 'skills',
}

CHOICE_KEYS = ('any', 'anyStandard', 'choose', 'anyArtisansTool', 'anyMusicalInstrument')


@dataclass
class AbilityChoiceSpec:
    """A 'choose' ability entry awaiting user resolution"""
    count: int = 1
    amount: int = 1
    from_abilities: List[str] = field(default_factory=lambda: list(ABILITIES))


@dataclass
class ParsedAbilities:
    fixed: List[Tuple[str, int]] = field(default_factory=list)
    choices: List[AbilityChoiceSpec] = field(default_factory=list)


@dataclass
class ChoiceGrant:
    """Allowance and option list to merge into an origin pool"""
    allowed: int = 0
    options: List[str] = field(default_factory=list)

    def merge(self, other: 'ChoiceGrant'):
        self.allowed += other.allowed
        self.options = unique_names(self.options + other.options)


@dataclass
class ParsedProficiencies:
    """Fixed grants in rule-data order and choice grants keyed by type"""
    fixed: List[Tuple[str, str]] = field(default_factory=list)
    choices: Dict[str, ChoiceGrant] = field(default_factory=dict)

    def add_fixed(self, prof_type: str, name: str):
        if name:
            self.fixed.append((prof_type, name))

    def add_choice(self, prof_type: str, allowed: int, options: List[str]):
        if allowed <= 0 or not options:
            return
        grant = ChoiceGrant(allowed, unique_names(options))
        if prof_type in self.choices:
            self.choices[prof_type].merge(grant)
        else:
            self.choices[prof_type] = grant

    def merge(self, other: 'ParsedProficiencies'):
        self.fixed.extend(other.fixed)
        for prof_type, grant in other.choices.items():
            self.add_choice(prof_type, grant.allowed, grant.options)


@dataclass
class RacialScalars:
    size: Optional[str] = None
    speed: Optional[Dict[str, int]] = None
    darkvision: Optional[int] = None
    resistances: List[str] = field(default_factory=list)


class RuleDataParser:
    """Derives ability, trait and proficiency grants from one rule-data record"""

    def parse_abilities(self, ability_data: Any) -> ParsedAbilities:
        """
        Parse an 'ability' list

        Args:
            ability_data: List of {<abilityKey>: int} and/or {choose: {...}} entries

        Returns:
            ParsedAbilities with fixed (ability, value) pairs and pending choice specs
        """
        parsed = ParsedAbilities()
        if not ability_data:
            return parsed
        if not isinstance(ability_data, list):
            logger.warning(f"Ignoring malformed ability block: {ability_data!r}")
            return parsed

        for entry in ability_data:
            if not isinstance(entry, dict):
                logger.warning(f"Skipping malformed ability entry: {entry!r}")
                continue
            for key, value in entry.items():
                if key == 'choose':
                    parsed.choices.extend(self._parse_ability_choice(value))
                    continue
                if isinstance(value, bool) or not isinstance(value, int):
                    continue
                ability = normalize_ability_name(key)
                if ability is None:
                    logger.warning(f"Skipping unknown ability '{key}' in ability block")
                    continue
                parsed.fixed.append((ability, value))
        return parsed

    def _parse_ability_choice(self, choose: Any) -> List[AbilityChoiceSpec]:
        if not isinstance(choose, dict):
            logger.warning(f"Skipping malformed ability choice: {choose!r}")
            return []

        # {weighted: {from: [...], weights: [2, 1]}} is one single-ability choice per weight
        weighted = choose.get('weighted')
        if isinstance(weighted, dict):
            from_abilities = self._ability_list(weighted.get('from'))
            return [
                AbilityChoiceSpec(count=1, amount=weight, from_abilities=list(from_abilities))
                for weight in weighted.get('weights') or []
                if isinstance(weight, int) and weight
            ]

        count = self._positive_int(choose.get('count'), 1)
        amount = choose.get('amount', 1)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            amount = 1
        return [AbilityChoiceSpec(count=count, amount=amount,
                                  from_abilities=self._ability_list(choose.get('from')))]

    def _ability_list(self, raw: Any) -> List[str]:
        if not raw or not isinstance(raw, list):
            return list(ABILITIES)
        abilities = []
        for key in raw:
            ability = normalize_ability_name(key)
            if ability and ability not in abilities:
                abilities.append(ability)
        return abilities or list(ABILITIES)

    def parse_traits(self, entries: Any) -> List[Tuple[str, str]]:
        """Named 'entries'-type blocks as (name, description) pairs"""
        traits = []
        if not isinstance(entries, list):
            return traits
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            if entry.get('type') != 'entries':
                continue
            name = entry.get('name')
            if not isinstance(name, str) or not name.strip():
                continue
            traits.append((name.strip(), self.flatten_entries(entry.get('entries'))))
        return traits

    def flatten_entries(self, entries: Any) -> str:
        """Render nested entries/items into plain text"""
        if entries is None:
            return ''
        if isinstance(entries, str):
            return strip_rule_tags(entries)
        if isinstance(entries, list):
            parts = [self.flatten_entries(entry) for entry in entries]
            return '\n'.join(part for part in parts if part)
        if isinstance(entries, dict):
            if 'entries' in entries:
                return self.flatten_entries(entries['entries'])
            if 'items' in entries:
                return self.flatten_entries(entries['items'])
            if 'entry' in entries:
                return self.flatten_entries(entries['entry'])
        return ''

    def parse_proficiencies(self, rule_data: Dict[str, Any], own_name: str = '') -> ParsedProficiencies:
        """
        Collect every proficiency block of a record

        Args:
            rule_data: Race, subrace, class or background record
            own_name: Record name, used for the language key 'other'

        Returns:
            ParsedProficiencies merging all blocks
        """
        parsed = ParsedProficiencies()
        if not isinstance(rule_data, dict):
            return parsed

        for key, prof_type in PROFICIENCY_BLOCK_KEYS.items():
            if key in rule_data:
                parsed.merge(self.parse_block(prof_type, rule_data[key], own_name))

        # Plain list form: languages: ['Common', 'Elvish']
        languages = rule_data.get('languages')
        if isinstance(languages, list):
            for language in languages:
                if isinstance(language, str):
                    parsed.add_fixed('languages', self.canonical_name('languages', language, own_name))

        starting = rule_data.get('startingProficiencies')
        if isinstance(starting, dict):
            for key, prof_type in STARTING_PROFICIENCY_KEYS.items():
                # Structured toolProficiencies supersede the free-text tools list
                if key == 'tools' and 'toolProficiencies' in starting:
                    continue
                if key in starting:
                    parsed.merge(self.parse_block(prof_type, starting[key], own_name))
        elif starting is not None:
            logger.warning(f"Ignoring malformed startingProficiencies in '{own_name}'")

        saving_throws = rule_data.get('proficiency')
        if isinstance(saving_throws, list):
            for key in saving_throws:
                ability = normalize_ability_name(key)
                if ability:
                    parsed.add_fixed('savingThrows', ability.capitalize())
                else:
                    logger.warning(f"Skipping unknown saving throw '{key}' in '{own_name}'")

        return parsed

    def parse_block(self, prof_type: str, block: Any, own_name: str = '') -> ParsedProficiencies:
        """Parse one proficiency block (list of entries, a single dict or plain names)"""
        parsed = ParsedProficiencies()
        if isinstance(block, dict):
            entries = [block]
        elif isinstance(block, list):
            entries = block
        else:
            logger.warning(f"Ignoring malformed {prof_type} block: {block!r}")
            return parsed

        for entry in entries:
            if isinstance(entry, str):
                parsed.add_fixed(prof_type, self.canonical_name(prof_type, entry, own_name))
            elif isinstance(entry, dict):
                self._parse_block_entry(prof_type, entry, own_name, parsed)
            else:
                logger.warning(f"Skipping malformed {prof_type} entry: {entry!r}")
        return parsed

    def _parse_block_entry(self, prof_type: str, entry: Dict[str, Any], own_name: str,
                           parsed: ParsedProficiencies):
        # {proficiency: 'shield', full: '...'} armor entries
        if 'proficiency' in entry and isinstance(entry['proficiency'], str):
            parsed.add_fixed(prof_type, self.canonical_name(prof_type, entry['proficiency'], own_name))
            return

        for key, value in entry.items():
            if key in CHOICE_KEYS:
                if prof_type not in OPTIONAL_PROFICIENCY_TYPES:
                    logger.warning(f"Ignoring '{key}' choice for {prof_type}; type has no choice pools")
                    continue
                allowed, options = self._parse_choice(prof_type, key, value, own_name)
                parsed.add_choice(prof_type, allowed, options)
            elif value is True:
                parsed.add_fixed(prof_type, self.canonical_name(prof_type, key, own_name))

    def _parse_choice(self, prof_type: str, key: str, value: Any, own_name: str) -> Tuple[int, List[str]]:
        if key == 'choose':
            if not isinstance(value, dict):
                logger.warning(f"Skipping malformed {prof_type} choose entry: {value!r}")
                return 0, []
            allowed = self._positive_int(value.get('count', value.get('amount')), 1)
            raw_options = value.get('from') or []
            options = [
                self.canonical_name(prof_type, option, own_name)
                for option in raw_options if isinstance(option, str)
            ]
            if prof_type == 'tools' and any(normalize_for_lookup(o) == "artisan's tools" for o in options):
                options = [o for o in options if normalize_for_lookup(o) != "artisan's tools"] + ARTISAN_TOOLS
            return allowed, options or list(STANDARD_OPTIONS[prof_type])
        if key == 'anyArtisansTool':
            return self._positive_int(value, 1), list(ARTISAN_TOOLS)
        if key == 'anyMusicalInstrument':
            return self._positive_int(value, 1), [MUSICAL_INSTRUMENT]
        # any / anyStandard
        return self._positive_int(value, 1), list(STANDARD_OPTIONS[prof_type])

    def canonical_name(self, prof_type: str, raw: str, own_name: str = '') -> str:
        """Display spelling for a rule-data key such as 'sleight of hand' or 'longsword|phb'"""
        text = strip_rule_tags(raw) if '{@' in raw else raw
        text = unpack_uid(text)
        if not text:
            return ''

        key = normalize_for_lookup(text)
        if prof_type == 'languages' and key == 'other':
            return own_name
        if prof_type == 'armor' and key in ARMOR_NAMES:
            return ARMOR_NAMES[key]
        if prof_type == 'armor' and key.rstrip('s') in ARMOR_NAMES:
            return ARMOR_NAMES[key.rstrip('s')]
        if prof_type == 'weapons' and key in WEAPON_NAMES:
            return WEAPON_NAMES[key]
        if prof_type in STANDARD_OPTIONS:
            match = find_matching(STANDARD_OPTIONS[prof_type], text)
            if match:
                return match
            if prof_type == 'tools':
                return text[:1].upper() + text[1:]
        return display_case(text)

    def parse_racial_scalars(self, rule_data: Dict[str, Any]) -> RacialScalars:
        """Size, speed, darkvision and resistances of a race or subrace"""
        scalars = RacialScalars()
        if not isinstance(rule_data, dict):
            return scalars

        size = rule_data.get('size')
        if isinstance(size, list) and size:
            size = size[0]
        if isinstance(size, str) and size:
            scalars.size = size

        speed = rule_data.get('speed')
        if isinstance(speed, bool):
            speed = None
        if isinstance(speed, int):
            scalars.speed = {'walk': speed}
        elif isinstance(speed, dict):
            parsed_speed = {}
            for mode, value in speed.items():
                # {fly: true} means "equal to walking speed"
                if value is True:
                    parsed_speed[mode] = speed.get('walk', 30) if isinstance(speed.get('walk'), int) else 30
                elif isinstance(value, int) and not isinstance(value, bool):
                    parsed_speed[mode] = value
                elif isinstance(value, dict) and isinstance(value.get('number'), int):
                    parsed_speed[mode] = value['number']
            if parsed_speed:
                scalars.speed = parsed_speed

        darkvision = rule_data.get('darkvision')
        if isinstance(darkvision, int) and not isinstance(darkvision, bool):
            scalars.darkvision = darkvision

        for key in ('resist', 'resistances'):
            for resistance in rule_data.get(key) or []:
                if isinstance(resistance, str):
                    scalars.resistances.append(resistance.lower())
                elif isinstance(resistance, dict):
                    value = resistance.get('resist') or resistance.get('name') or resistance.get('type')
                    if isinstance(value, str):
                        scalars.resistances.append(value.lower())
                    elif isinstance(value, list):
                        scalars.resistances.extend(v.lower() for v in value if isinstance(v, str))
        return scalars

    def parse_hit_die(self, rule_data: Dict[str, Any]) -> int:
        """Faces of a class hit die: {hd: {number: 1, faces: 10}} -> 10"""
        hit_dice = rule_data.get('hd') if isinstance(rule_data, dict) else None
        if isinstance(hit_dice, dict):
            faces = hit_dice.get('faces')
            if isinstance(faces, int) and not isinstance(faces, bool) and faces > 0:
                return faces
        elif isinstance(hit_dice, int) and not isinstance(hit_dice, bool) and hit_dice > 0:
            return hit_dice
        return 0

    @staticmethod
    def _positive_int(value: Any, default: int) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            return default
        return value


# Parser has no state; share one instance
rule_data_parser = RuleDataParser()
