"""
Lookup normalization shared by every ledger.

Case handling for proficiency, ability and origin names is one policy:
normalize_for_lookup. Ledgers store names as first granted and compare them
through this function only.
"""
import re
from typing import Iterable, List, Optional

ABILITIES = ['strength', 'dexterity', 'constitution', 'intelligence', 'wisdom', 'charisma']

ABILITY_ABBREVIATIONS = {
    'str': 'strength',
    'dex': 'dexterity',
    'con': 'constitution',
    'int': 'intelligence',
    'wis': 'wisdom',
    'cha': 'charisma',
}

# {@item shield|phb}, {@filter simple weapons|items|type=simple weapon}
_TAG_PATTERN = re.compile(r"\{@\w+\s+([^}|]*)(?:\|[^}]*)?\}")


def normalize_for_lookup(name: Optional[str]) -> str:
    """Canonical comparison key: trimmed, collapsed whitespace, case-folded"""
    if not name:
        return ''
    return ' '.join(str(name).split()).casefold()


def names_match(left: Optional[str], right: Optional[str]) -> bool:
    return normalize_for_lookup(left) == normalize_for_lookup(right)


def find_matching(names: Iterable[str], target: Optional[str]) -> Optional[str]:
    """Return the stored spelling in names that matches target, if any"""
    key = normalize_for_lookup(target)
    if not key:
        return None
    for name in names:
        if normalize_for_lookup(name) == key:
            return name
    return None


def unique_names(names: Iterable[str]) -> List[str]:
    """Order-preserving, case-insensitive de-duplication"""
    seen = set()
    result = []
    for name in names:
        key = normalize_for_lookup(name)
        if key and key not in seen:
            seen.add(key)
            result.append(name)
    return result


def normalize_ability_name(ability: Optional[str]) -> Optional[str]:
    """Map 'str', 'STR', 'Strength' to 'strength'; None if not an ability"""
    key = normalize_for_lookup(ability)
    if not key:
        return None
    if key in ABILITY_ABBREVIATIONS:
        return ABILITY_ABBREVIATIONS[key]
    if key in ABILITIES:
        return key
    return None


def strip_rule_tags(text: str) -> str:
    """Replace inline rule-data tags with their display text"""
    if not isinstance(text, str):
        return ''
    return _TAG_PATTERN.sub(lambda m: m.group(1).strip(), text).strip()


def unpack_uid(uid: str) -> str:
    """'longsword|phb' -> 'longsword'"""
    if not isinstance(uid, str):
        return ''
    return uid.split('|', 1)[0].strip()


def display_case(name: str) -> str:
    """Title-case rule-data keys such as 'sleight of hand' -> 'Sleight of Hand'"""
    small_words = {'of', 'the', 'and'}
    words = name.split()
    return ' '.join(
        word if (index and word.lower() in small_words) else word[:1].upper() + word[1:]
        for index, word in enumerate(words)
    )
