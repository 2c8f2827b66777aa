"""
Tests for TraitManager
"""
import pytest


@pytest.fixture
def trait_manager(character_manager):
    return character_manager.get_manager('trait')


class TestTraits:
    """Test the name-keyed trait map"""

    def test_add_and_get(self, trait_manager):
        assert trait_manager.add('Fey Ancestry', 'Advantage against charm.', 'Race')

        assert trait_manager.get_traits() == {
            'Fey Ancestry': {'description': 'Advantage against charm.', 'source': 'Race'}
        }

    def test_dict_and_list_descriptions(self, trait_manager):
        trait_manager.add('Cantrip', {'description': 'One cantrip.'}, 'Subrace')
        trait_manager.add('Trance', ['Meditate.', 'Four hours.'], 'Race')

        traits = trait_manager.get_traits()
        assert traits['Cantrip']['description'] == 'One cantrip.'
        assert traits['Trance']['description'] == 'Meditate.\nFour hours.'

    def test_later_trait_shadows_earlier(self, trait_manager):
        """Test that a name collision keeps only the latest trait"""
        trait_manager.add('Darkvision', '60 ft.', 'Race')
        trait_manager.add('Darkvision', '120 ft.', 'Subrace')

        assert trait_manager.get_traits()['Darkvision'] == {'description': '120 ft.', 'source': 'Subrace'}

    def test_missing_name_or_source(self, trait_manager):
        assert not trait_manager.add('', 'text', 'Race')
        assert not trait_manager.add('Trait', 'text', '')
        assert trait_manager.get_traits() == {}

    def test_clear_by_source(self, trait_manager):
        trait_manager.add('Trance', 'text', 'Race')
        trait_manager.add('Cantrip', 'text', 'Subrace')
        trait_manager.add('Criminal Contact', 'text', 'Background')

        assert trait_manager.clear_by_source('Race') == 1
        assert set(trait_manager.get_traits()) == {'Cantrip', 'Criminal Contact'}


class TestRacialFeatures:
    """Test darkvision and resistances"""

    def test_darkvision_and_resistances(self, character_manager, trait_manager):
        trait_manager.set_darkvision(60)
        trait_manager.add_resistance('Poison')

        features = character_manager.state.features
        assert features.darkvision == 60
        assert features.resistances == {'poison'}

    def test_clear_racial_features(self, character_manager, trait_manager):
        trait_manager.set_darkvision(120)
        trait_manager.add_resistance('fire')
        trait_manager.clear_racial_features()

        features = character_manager.state.features
        assert features.darkvision == 0
        assert features.resistances == set()
