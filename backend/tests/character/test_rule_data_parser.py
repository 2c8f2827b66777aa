"""
Tests for RuleDataParser and the lookup normalization helpers
"""
import pytest

from character.proficiency_constants import ARTISAN_TOOLS, MUSICAL_INSTRUMENT, STANDARD_LANGUAGE_OPTIONS
from character.utils.normalization import (
    display_case, find_matching, names_match, normalize_ability_name,
    normalize_for_lookup, strip_rule_tags, unique_names, unpack_uid
)
from character.utils.rule_data_parser import RuleDataParser


@pytest.fixture
def parser():
    return RuleDataParser()


class TestNormalization:
    """Test the shared lookup policy"""

    def test_normalize_for_lookup(self):
        assert normalize_for_lookup('  Sleight   of HAND ') == 'sleight of hand'
        assert normalize_for_lookup(None) == ''

    def test_names_match_and_find(self):
        assert names_match('Thieves\' Tools', "thieves' tools")
        assert find_matching(['Stealth', 'Arcana'], 'ARCANA') == 'Arcana'
        assert find_matching(['Stealth'], '') is None

    def test_unique_names_keeps_first_spelling(self):
        assert unique_names(['Elvish', 'elvish', 'Dwarvish', '', 'ELVISH']) == ['Elvish', 'Dwarvish']

    @pytest.mark.parametrize('raw, expected', [
        ('str', 'strength'),
        ('CHA', 'charisma'),
        ('Wisdom', 'wisdom'),
        ('luck', None),
        ('', None),
    ])
    def test_normalize_ability_name(self, raw, expected):
        assert normalize_ability_name(raw) == expected

    def test_rule_tags_and_uids(self):
        assert strip_rule_tags('Proficient with {@item shield|phb|shields}.') == 'Proficient with shield.'
        assert strip_rule_tags('{@skill Perception}') == 'Perception'
        assert unpack_uid('longsword|phb') == 'longsword'
        assert display_case('sleight of hand') == 'Sleight of Hand'


class TestAbilities:
    """Test ability block parsing"""

    def test_fixed_and_choice(self, parser):
        parsed = parser.parse_abilities([{'cha': 2, 'choose': {'from': ['str', 'dex'], 'count': 1}}])

        assert parsed.fixed == [('charisma', 2)]
        assert len(parsed.choices) == 1
        assert parsed.choices[0].from_abilities == ['strength', 'dexterity']
        assert parsed.choices[0].amount == 1

    def test_choice_defaults_to_all_abilities(self, parser):
        parsed = parser.parse_abilities([{'choose': {'count': 2, 'amount': 2}}])

        choice = parsed.choices[0]
        assert choice.count == 2
        assert choice.amount == 2
        assert len(choice.from_abilities) == 6

    def test_weighted_choice(self, parser):
        """Test {weighted: {weights: [2, 1]}} becomes one choice per weight"""
        parsed = parser.parse_abilities([{'choose': {'weighted': {
            'from': ['str', 'dex', 'con', 'int', 'wis', 'cha'], 'weights': [2, 1]}}}])

        assert [(c.count, c.amount) for c in parsed.choices] == [(1, 2), (1, 1)]

    def test_malformed_blocks(self, parser):
        assert parser.parse_abilities(None).fixed == []
        assert parser.parse_abilities('str 2').fixed == []
        parsed = parser.parse_abilities(['str', {'luck': 2, 'dex': '2', 'con': True, 'wis': 1}])
        assert parsed.fixed == [('wisdom', 1)]


class TestTraits:
    def test_named_entries_only(self, parser):
        traits = parser.parse_traits([
            {'type': 'entries', 'name': 'Keen Senses', 'entries': ['You have {@skill Perception}.']},
            {'type': 'inset', 'name': 'Names', 'entries': ['ignored']},
            {'type': 'entries', 'entries': ['unnamed']},
            'loose text',
        ])

        assert traits == [('Keen Senses', 'You have Perception.')]

    def test_flatten_nested_entries(self, parser):
        text = parser.flatten_entries([
            'First.',
            {'type': 'list', 'items': ['One', {'type': 'item', 'entry': 'Two'}]},
        ])

        assert text == 'First.\nOne\nTwo'


class TestProficiencies:
    """Test proficiency block parsing"""

    def test_fixed_and_any(self, parser):
        parsed = parser.parse_proficiencies({
            'skillProficiencies': [{'perception': True, 'any': 1}],
            'languageProficiencies': [{'common': True, 'anyStandard': 2}],
        })

        assert parsed.fixed == [('skills', 'Perception'), ('languages', 'Common')]
        assert parsed.choices['skills'].allowed == 1
        assert parsed.choices['languages'].allowed == 2
        assert parsed.choices['languages'].options == STANDARD_LANGUAGE_OPTIONS

    def test_other_language_is_own_name(self, parser):
        parsed = parser.parse_proficiencies({'languageProficiencies': [{'common': True, 'other': True}]},
                                            own_name='Aarakocra')

        assert ('languages', 'Aarakocra') in parsed.fixed

    def test_plain_language_list(self, parser):
        parsed = parser.parse_proficiencies({'languages': ['Common', 'sylvan']})

        assert parsed.fixed == [('languages', 'Common'), ('languages', 'Sylvan')]

    def test_tool_choices(self, parser):
        parsed = parser.parse_proficiencies({'toolProficiencies': [
            {'anyArtisansTool': 1}, {'anyMusicalInstrument': 2}
        ]})

        assert parsed.choices['tools'].allowed == 3
        assert parsed.choices['tools'].options == ARTISAN_TOOLS + [MUSICAL_INSTRUMENT]

    def test_choose_artisans_tools_expands(self, parser):
        parsed = parser.parse_proficiencies({'toolProficiencies': [
            {'choose': {'from': ["artisan's tools", 'disguise kit'], 'count': 1}}
        ]})

        options = parsed.choices['tools'].options
        assert options[0] == 'Disguise kit'
        assert options[1:] == ARTISAN_TOOLS

    def test_choice_for_type_without_pools_is_ignored(self, parser):
        parsed = parser.parse_proficiencies({'weaponProficiencies': [{'any': 1, 'club': True}]})

        assert parsed.fixed == [('weapons', 'Club')]
        assert 'weapons' not in parsed.choices

    def test_starting_proficiencies(self, parser, rogue_phb):
        parsed = parser.parse_proficiencies(rogue_phb, own_name='Rogue')

        assert ('armor', 'Light Armor') in parsed.fixed
        assert ('tools', "Thieves' tools") in parsed.fixed
        assert ('savingThrows', 'Dexterity') in parsed.fixed
        # free-text tools list is superseded by toolProficiencies
        assert sum(1 for prof_type, _ in parsed.fixed if prof_type == 'tools') == 1
        assert parsed.choices['skills'].allowed == 4

    def test_armor_proficiency_entry(self, parser):
        parsed = parser.parse_block('armor', [{'proficiency': 'shield', 'full': 'shields (if not metal)'}])

        assert parsed.fixed == [('armor', 'Shields')]

    def test_malformed_blocks_are_skipped(self, parser):
        parsed = parser.parse_proficiencies({
            'skillProficiencies': 'stealth',
            'toolProficiencies': [None, {'choose': 'everything'}],
            'startingProficiencies': ['armor'],
            'proficiency': ['luck', 'str'],
        })

        assert parsed.fixed == [('savingThrows', 'Strength')]
        assert parsed.choices == {}


class TestScalars:
    """Test racial scalars and hit dice"""

    def test_racial_scalars(self, parser):
        scalars = parser.parse_racial_scalars({
            'size': ['S', 'M'],
            'speed': {'walk': 25, 'fly': True, 'swim': {'number': 20, 'condition': 'x'}},
            'darkvision': 120,
            'resist': ['Fire', {'resist': ['cold', 'acid']}],
        })

        assert scalars.size == 'S'
        assert scalars.speed == {'walk': 25, 'fly': 25, 'swim': 20}
        assert scalars.darkvision == 120
        assert scalars.resistances == ['fire', 'cold', 'acid']

    def test_integer_speed(self, parser):
        assert parser.parse_racial_scalars({'speed': 35}).speed == {'walk': 35}

    @pytest.mark.parametrize('record, expected', [
        ({'hd': {'number': 1, 'faces': 12}}, 12),
        ({'hd': 6}, 6),
        ({'hd': {'faces': 'd8'}}, 0),
        ({}, 0),
    ])
    def test_hit_die(self, parser, record, expected):
        assert parser.parse_hit_die(record) == expected
