"""
Canonical option lists and proficiency type constants
"""

PROFICIENCY_TYPES = ['skills', 'savingThrows', 'languages', 'tools', 'armor', 'weapons']

# Types that carry per-origin optional-choice pools
OPTIONAL_PROFICIENCY_TYPES = ['skills', 'languages', 'tools']

ORIGINS = ['race', 'class', 'background']

DEFAULT_LANGUAGE = 'Common'
DEFAULT_SOURCE = 'Default'

STANDARD_SKILL_OPTIONS = [
    'Acrobatics',
    'Animal Handling',
    'Arcana',
    'Athletics',
    'Deception',
    'History',
    'Insight',
    'Intimidation',
    'Investigation',
    'Medicine',
    'Nature',
    'Perception',
    'Performance',
    'Persuasion',
    'Religion',
    'Sleight of Hand',
    'Stealth',
    'Survival',
]

STANDARD_LANGUAGE_OPTIONS = [
    'Common',
    'Dwarvish',
    'Elvish',
    'Giant',
    'Gnomish',
    'Goblin',
    'Halfling',
    'Orc',
    'Abyssal',
    'Celestial',
    'Draconic',
    'Deep Speech',
    'Infernal',
    'Primordial',
    'Sylvan',
    'Undercommon',
]

ARTISAN_TOOLS = [
    "Alchemist's supplies",
    "Brewer's supplies",
    "Calligrapher's supplies",
    "Carpenter's tools",
    "Cartographer's tools",
    "Cobbler's tools",
    "Cook's utensils",
    "Glassblower's tools",
    "Jeweler's tools",
    "Leatherworker's tools",
    "Mason's tools",
    "Painter's supplies",
    "Potter's tools",
    "Smith's tools",
    "Tinker's tools",
    "Weaver's tools",
    "Woodcarver's tools",
]

MUSICAL_INSTRUMENT = 'Musical instrument'

STANDARD_TOOL_OPTIONS = ARTISAN_TOOLS + [
    'Disguise kit',
    'Forgery kit',
    'Gaming set',
    'Herbalism kit',
    MUSICAL_INSTRUMENT,
    "Navigator's tools",
    "Poisoner's kit",
    "Thieves' tools",
]

STANDARD_OPTIONS = {
    'skills': STANDARD_SKILL_OPTIONS,
    'languages': STANDARD_LANGUAGE_OPTIONS,
    'tools': STANDARD_TOOL_OPTIONS,
}

ARMOR_NAMES = {
    'light': 'Light Armor',
    'medium': 'Medium Armor',
    'heavy': 'Heavy Armor',
    'shield': 'Shields',
}

WEAPON_NAMES = {
    'simple': 'Simple Weapons',
    'martial': 'Martial Weapons',
}

DEFAULT_SIZE = 'M'
DEFAULT_SPEED = {'walk': 30}
DEFAULT_ABILITY_SCORE = 8
