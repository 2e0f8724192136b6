"""
Rule store tests.

Covers atomic validation on load, first-match-wins lookup in declaration
order, and binding release.
"""

import pytest

from surface_id_agent.errors import ErrorCode, RuleConfigError
from surface_id_agent.models import DefaultRange, SurfaceIdentity, SurfaceRule
from surface_id_agent.rules import RuleStore


def rule(surface_id, app_id=None, title=None) -> SurfaceRule:
    return SurfaceRule(surface_id=surface_id, app_id=app_id, title=title)


@pytest.fixture
def store() -> RuleStore:
    store = RuleStore()
    store.load([
        rule(7, app_id="nav"),
        rule(8, title="Media Player"),
        rule(9, app_id="browser", title="Settings"),
        rule(10, app_id="browser"),
    ])
    return store


class TestLoadValidation:
    """Whole rule sets are accepted or rejected as a unit."""

    def test_valid_rules_load(self):
        store = RuleStore()
        store.load([rule(1, app_id="a"), rule(2, title="b")], DefaultRange(start=100, max=200))
        assert len(store) == 2
        assert [r.surface_id for r in store] == [1, 2]

    def test_duplicate_surface_id_rejected(self):
        store = RuleStore()
        with pytest.raises(RuleConfigError) as exc_info:
            store.load([rule(1, app_id="a"), rule(1, app_id="b")])
        assert exc_info.value.code == ErrorCode.DUPLICATE_SURFACE_ID
        assert len(store) == 0

    def test_surface_id_in_default_range_rejected(self):
        store = RuleStore()
        with pytest.raises(RuleConfigError) as exc_info:
            store.load([rule(150, app_id="a")], DefaultRange(start=100, max=200))
        assert exc_info.value.code == ErrorCode.SURFACE_ID_IN_DEFAULT_RANGE
        assert exc_info.value.context["surface_id"] == 150

    def test_range_upper_bound_is_exclusive(self):
        store = RuleStore()
        store.load([rule(200, app_id="a"), rule(99, app_id="b")], DefaultRange(start=100, max=200))
        assert len(store) == 2

    def test_range_lower_bound_is_inclusive(self):
        store = RuleStore()
        with pytest.raises(RuleConfigError):
            store.load([rule(100, app_id="a")], DefaultRange(start=100, max=200))

    def test_rule_without_patterns_rejected(self):
        store = RuleStore()
        with pytest.raises(RuleConfigError) as exc_info:
            store.load([rule(1, app_id="a"), rule(2)])
        assert exc_info.value.code == ErrorCode.EMPTY_RULE

    def test_failed_load_leaves_store_empty(self, store):
        assert len(store) == 4
        with pytest.raises(RuleConfigError):
            store.load([rule(1, app_id="a"), rule(1, app_id="b")])
        assert len(store) == 0
        assert store.find_match(SurfaceIdentity(app_id="nav")) is None

    def test_no_default_range_allows_any_id(self):
        store = RuleStore()
        store.load([rule(0, app_id="a"), rule(150, app_id="b")])
        assert len(store) == 2


class TestFindMatch:
    """First declared rule whose set patterns all match wins."""

    def test_app_id_match(self, store):
        match = store.find_match(SurfaceIdentity(app_id="nav"))
        assert match.surface_id == 7

    def test_app_id_rule_ignores_title(self, store):
        match = store.find_match(SurfaceIdentity(app_id="nav", title="anything"))
        assert match.surface_id == 7

    def test_title_match(self, store):
        match = store.find_match(SurfaceIdentity(app_id="vlc", title="Media Player"))
        assert match.surface_id == 8

    def test_both_patterns_must_match(self, store):
        match = store.find_match(SurfaceIdentity(app_id="browser", title="Settings"))
        assert match.surface_id == 9

    def test_declaration_order_breaks_ties(self, store):
        # Rule 10 (app-id only) also matches; rule 9 is declared first.
        assert store.find_match(SurfaceIdentity(app_id="browser", title="Settings")).surface_id == 9
        assert store.find_match(SurfaceIdentity(app_id="browser", title="Home")).surface_id == 10

    def test_match_is_case_sensitive(self, store):
        assert store.find_match(SurfaceIdentity(app_id="Nav")) is None

    def test_missing_field_does_not_match_set_pattern(self, store):
        assert store.find_match(SurfaceIdentity(app_id=None, title=None)) is None

    def test_no_match(self, store):
        assert store.find_match(SurfaceIdentity(app_id="terminal", title="bash")) is None


class TestBindings:
    """Rules held by a live surface do not match for other surfaces."""

    def test_bound_rule_not_returned_for_other_surface(self, store):
        nav = store.find_match(SurfaceIdentity(app_id="nav"))
        store.bind(nav, "surface-a")

        assert store.find_match(SurfaceIdentity(app_id="nav"), "surface-b") is None
        assert store.first_match(SurfaceIdentity(app_id="nav")) is nav

    def test_bound_rule_still_matches_same_surface(self, store):
        nav = store.find_match(SurfaceIdentity(app_id="nav"))
        store.bind(nav, "surface-a")
        assert store.find_match(SurfaceIdentity(app_id="nav"), "surface-a") is nav

    def test_release_clears_binding(self, store):
        nav = store.find_match(SurfaceIdentity(app_id="nav"))
        store.bind(nav, "surface-a")

        released = store.release("surface-a")

        assert released is nav
        assert store.bound_surface(nav) is None
        assert store.find_match(SurfaceIdentity(app_id="nav"), "surface-b") is nav

    def test_release_is_idempotent(self, store):
        nav = store.find_match(SurfaceIdentity(app_id="nav"))
        store.bind(nav, "surface-a")
        store.release("surface-a")
        assert store.release("surface-a") is None
        assert store.release("never-bound") is None
