"""
Shared fixtures for build engine tests.
Rule-data records follow the 5e-style shape the engine consumes.
"""
import pytest

from config.build_settings import BuildSettings
from character.factory import create_character_manager
from character.proficiency_constants import ORIGINS


@pytest.fixture
def settings():
    """Strict settings independent of the process environment"""
    return BuildSettings(default_sources=["PHB"], refresh_window_ms=150,
                         strict_contracts=True, event_history_limit=500)


@pytest.fixture
def lenient_settings():
    return BuildSettings(strict_contracts=False)


@pytest.fixture
def character_manager(settings):
    """Fresh CharacterManager with every manager registered"""
    return create_character_manager(settings=settings)


@pytest.fixture
def human_phb():
    return {
        "name": "Human",
        "source": "PHB",
        "size": ["M"],
        "speed": 30,
        "ability": [{"str": 1, "dex": 1, "con": 1, "int": 1, "wis": 1, "cha": 1}],
        "entries": [
            {"type": "entries", "name": "Age", "entries": ["Humans reach adulthood in their late teens."]},
            {"type": "entries", "name": "Languages",
             "entries": ["You can speak, read, and write Common and one extra language of your choice."]},
        ],
        "languageProficiencies": [{"common": True, "anyStandard": 1}],
    }


@pytest.fixture
def variant_human():
    return {
        "name": "Variant",
        "source": "PHB",
        "ability": [{"choose": {"from": ["str", "dex", "con", "int", "wis", "cha"], "count": 2}}],
        "skillProficiencies": [{"any": 3}],
        "entries": [
            {"type": "entries", "name": "Feat", "entries": ["You gain one feat of your choice."]},
        ],
    }


@pytest.fixture
def half_elf_phb():
    return {
        "name": "Half-Elf",
        "source": "PHB",
        "size": ["M"],
        "speed": 30,
        "darkvision": 60,
        "ability": [{"cha": 2, "choose": {"from": ["str", "dex", "con", "int", "wis"], "count": 2}}],
        "skillProficiencies": [{"any": 2}],
        "languageProficiencies": [{"common": True, "elvish": True, "anyStandard": 1}],
        "entries": [
            {"type": "entries", "name": "Darkvision",
             "entries": ["You can see in dim light within 60 feet of you as if it were bright light."]},
            {"type": "entries", "name": "Fey Ancestry",
             "entries": ["You have advantage on saving throws against being {@condition charmed}."]},
            {"type": "entries", "name": "Skill Versatility",
             "entries": ["You gain proficiency in two skills of your choice."]},
        ],
    }


@pytest.fixture
def elf_phb():
    return {
        "name": "Elf",
        "source": "PHB",
        "size": ["M"],
        "speed": 30,
        "darkvision": 60,
        "ability": [{"dex": 2}],
        "skillProficiencies": [{"perception": True}],
        "languageProficiencies": [{"common": True, "elvish": True}],
        "entries": [
            {"type": "entries", "name": "Darkvision", "entries": ["Accustomed to twilit forests."]},
            {"type": "entries", "name": "Keen Senses",
             "entries": ["You have proficiency in the {@skill Perception} skill."]},
            {"type": "entries", "name": "Trance", "entries": ["Elves don't need to sleep."]},
            {"type": "inset", "name": "Elf Names", "entries": ["Not a trait."]},
        ],
    }


@pytest.fixture
def high_elf():
    return {
        "name": "High",
        "source": "PHB",
        "ability": [{"int": 1}],
        "weaponProficiencies": [{"longsword|phb": True, "shortsword|phb": True,
                                 "shortbow|phb": True, "longbow|phb": True}],
        "languageProficiencies": [{"anyStandard": 1}],
        "entries": [
            {"type": "entries", "name": "Cantrip", "entries": ["You know one cantrip of your choice."]},
        ],
    }


@pytest.fixture
def dwarf_phb():
    return {
        "name": "Dwarf",
        "source": "PHB",
        "size": ["M"],
        "speed": 25,
        "darkvision": 60,
        "resist": ["poison"],
        "ability": [{"con": 2}],
        "toolProficiencies": [{"choose": {"from": ["smith's tools", "brewer's supplies", "mason's tools"]}}],
        "languageProficiencies": [{"common": True, "dwarvish": True}],
        "entries": [
            {"type": "entries", "name": "Dwarven Resilience", "entries": ["Resistance against poison damage."]},
        ],
    }


@pytest.fixture
def rogue_phb():
    return {
        "name": "Rogue",
        "source": "PHB",
        "hd": {"number": 1, "faces": 8},
        "proficiency": ["dex", "int"],
        "startingProficiencies": {
            "armor": ["light"],
            "weapons": ["simple", "{@item hand crossbow|phb|hand crossbows}", "{@item longsword|phb|longswords}"],
            "tools": ["{@item thieves' tools|phb}"],
            "toolProficiencies": [{"thieves' tools": True}],
            "skills": [{"choose": {"from": ["acrobatics", "athletics", "deception", "insight", "intimidation",
                                            "investigation", "perception", "performance", "persuasion",
                                            "sleight of hand", "stealth"], "count": 4}}],
        },
    }


@pytest.fixture
def warden_class():
    """Class granting Stealth unconditionally plus a skill choice"""
    return {
        "name": "Warden",
        "source": "HB",
        "hd": {"number": 1, "faces": 10},
        "proficiency": ["str", "con"],
        "startingProficiencies": {
            "armor": ["light", "medium", "{@item shield|phb|shields}"],
            "weapons": ["simple", "martial"],
            "skills": [{"stealth": True}, {"choose": {"from": ["athletics", "survival", "perception"], "count": 2}}],
        },
    }


@pytest.fixture
def criminal_background():
    return {
        "name": "Criminal",
        "source": "PHB",
        "skillProficiencies": [{"deception": True, "stealth": True}],
        "toolProficiencies": [{"thieves' tools": True, "gaming set": True}],
        "entries": [
            {"type": "list", "items": ["Skill Proficiencies: Deception, Stealth"]},
            {"type": "entries", "name": "Feature: Criminal Contact",
             "entries": ["You have a reliable and trustworthy contact."]},
        ],
    }


@pytest.fixture
def guild_artisan_background():
    return {
        "name": "Guild Artisan",
        "source": "PHB",
        "skillProficiencies": [{"insight": True, "persuasion": True}],
        "toolProficiencies": [{"anyArtisansTool": 1}],
        "languageProficiencies": [{"anyStandard": 1}],
    }


@pytest.fixture
def check_invariants():
    """Assert pool capacity/subset and ledger/source invariants of a manager"""
    def _check(manager):
        state = manager.state
        for prof_type, optional_set in state.optional_proficiencies.items():
            for origin in ORIGINS:
                pool = optional_set.pools[origin]
                assert len(pool.selected) <= pool.allowed, f"{prof_type}.{origin} over capacity"
                lowered = [option.lower() for option in pool.options]
                for name in pool.selected:
                    assert name.lower() in lowered, f"{prof_type}.{origin} selected '{name}' not offered"
            assert len(optional_set.selected) <= optional_set.allowed

        for prof_type, names in state.proficiencies.items():
            sources = state.proficiency_sources.get(prof_type, {})
            for name in names:
                assert sources.get(name), f"{prof_type} '{name}' granted without a source"
            for name, tags in sources.items():
                assert tags, f"{prof_type} '{name}' has an empty source set"
                assert name in names, f"{prof_type} '{name}' has sources but is not granted"
    return _check
