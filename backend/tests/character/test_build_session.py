"""
Tests for BuildSession: unsaved-change tracking and refresh delivery
"""
from unittest.mock import Mock

import pytest

from character.build_session import BuildSession
from character.refresh_debouncer import RefreshDebouncer
from character.serializer import to_persisted


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(settings, clock):
    """Build session with a controllable refresh clock"""
    build_session = BuildSession(1, settings=settings)
    build_session.debouncer = RefreshDebouncer(settings.refresh_window_ms, clock=clock)
    return build_session


class TestDirtyTracking:
    """Test unsaved change tracking"""

    def test_new_session_is_clean(self, session):
        assert not session.has_unsaved_changes()

    def test_apply_marks_dirty(self, session, human_phb):
        session.apply_build_source('race', human_phb)

        assert session.has_unsaved_changes()

    def test_selection_marks_dirty(self, session, half_elf_phb):
        session.apply_build_source('race', half_elf_phb)
        session.export()

        session.character_manager.select_optional_proficiency('skills', 'race', 'Stealth')

        assert session.has_unsaved_changes()

    def test_export_marks_saved(self, session, human_phb):
        session.apply_build_source('race', human_phb)

        record = session.export()

        assert record['race']['name'] == 'Human'
        assert not session.has_unsaved_changes()

    def test_failed_apply_stays_clean(self, session, human_phb, elf_phb, monkeypatch):
        """Test that a rolled-back apply leaves no unsaved changes behind"""
        session.apply_build_source('race', human_phb)
        session.export()
        trait_manager = session.character_manager.get_manager('trait')
        monkeypatch.setattr(trait_manager, 'add', Mock(side_effect=RuntimeError('boom')))

        with pytest.raises(RuntimeError):
            session.apply_build_source('race', elf_phb)

        assert not session.has_unsaved_changes()
        assert session.character_manager.state.race.name == 'Human'

    def test_export_without_marking(self, session, human_phb):
        session.apply_build_source('race', human_phb)
        session.export(mark_saved=False)

        assert session.has_unsaved_changes()


class TestRefresh:
    """Test refresh delivery after engine calls"""

    def test_one_refresh_per_apply(self, session, human_phb):
        """Test teardown and setup signals for a slot are delivered once"""
        refreshed = []
        session.on_refresh(refreshed.append)

        session.apply_build_source('race', human_phb)

        assert refreshed == ['race']

    def test_change_inside_window_is_delivered(self, session, clock, human_phb, elf_phb):
        """Test that a real change right after a refresh still reaches listeners"""
        seen = []
        session.on_refresh(lambda kind: seen.append((kind, session.character_manager.state.race.name)))

        session.apply_build_source('race', human_phb)
        clock.now += 0.05
        session.apply_build_source('race', elf_phb)

        assert seen == [('race', 'Human'), ('race', 'Elf')]

    def test_identical_repeat_inside_window_is_suppressed(self, session, clock, human_phb):
        refreshed = []
        session.on_refresh(refreshed.append)

        session.apply_build_source('race', human_phb)
        clock.now += 0.05
        session.apply_build_source('race', human_phb)
        assert refreshed == ['race']

        clock.now += 1.0
        session.apply_build_source('race', human_phb)
        assert refreshed == ['race', 'race']

    def test_listener_reentry_does_not_cascade(self, session, human_phb, criminal_background):
        """Test a listener that re-applies slots stops once the state settles"""
        refreshed = []

        def listener(kind):
            refreshed.append(kind)
            if kind == 'race':
                session.apply_build_source('background', criminal_background)
            elif kind == 'background':
                session.apply_build_source('race', human_phb)

        session.on_refresh(listener)
        session.apply_build_source('race', human_phb)

        assert refreshed == ['race', 'background', 'race']
        assert session.character_manager.state.background.name == 'Criminal'
        assert session.character_manager.state.race.name == 'Human'

    def test_failing_listener_is_isolated(self, session, human_phb):
        refreshed = []

        def broken(kind):
            raise RuntimeError('view crashed')

        session.on_refresh(broken)
        session.on_refresh(refreshed.append)
        session.apply_build_source('race', human_phb)

        assert refreshed == ['race']

    def test_refresh_flushed_when_apply_fails(self, session):
        refreshed = []
        session.on_refresh(refreshed.append)

        with pytest.raises(Exception):
            session.apply_build_source('deity', {'name': 'Tyr'})

        assert refreshed == []
        assert session.flush_refresh() == []


class TestLifecycle:
    def test_from_record(self, settings, half_elf_phb):
        original = BuildSession(1, settings=settings)
        original.apply_build_source('race', half_elf_phb)
        original.character_manager.select_optional_proficiency('skills', 'race', 'Stealth')

        restored = BuildSession.from_record(2, original.export(), settings=settings)

        assert restored.session_id == 2
        assert not restored.has_unsaved_changes()
        assert to_persisted(restored.character_manager.state) == to_persisted(original.character_manager.state)

    def test_get_info(self, session, rogue_phb):
        session.apply_build_source('class', rogue_phb)

        info = session.get_info()

        assert info['session_id'] == 1
        assert info['class'] == 'Rogue'
        assert info['race'] == ''
        assert info['has_unsaved_changes'] is True
        assert 'created_at' in info

    def test_context_manager_closes(self, settings):
        with BuildSession(3, settings=settings) as build_session:
            assert build_session.character_manager is not None

        assert build_session.character_manager is None
