"""Tests for the filter bar state machine."""

import pytest

from launchsearch.engine.errors import InvalidFilterKey
from launchsearch.engine.filters import (
    CATEGORIES,
    FilterState,
    all_categories_enabled,
    enabled_categories_count,
    toggle,
)


class TestToggleGroupLaw:
    @pytest.mark.parametrize("category", CATEGORIES)
    def test_from_all_enabled_narrows_to_one(self, category):
        state = toggle(FilterState(), category)

        assert state.enabled_categories() == (category,)

    @pytest.mark.parametrize("category", CATEGORIES)
    def test_toggling_the_single_category_restores_all(self, category):
        narrowed = toggle(FilterState(), category)

        assert all_categories_enabled(toggle(narrowed, category))

    def test_adding_a_second_category(self):
        state = toggle(toggle(FilterState(), "apps"), "files")

        assert state.enabled_categories() == ("apps", "files")
        assert enabled_categories_count(state) == 2

    def test_removing_from_partial_selection(self):
        state = toggle(toggle(toggle(FilterState(), "apps"), "files"), "apps")

        assert state.enabled_categories() == ("files",)

    def test_input_state_is_unchanged(self):
        state = FilterState()
        toggle(state, "apps")

        assert all_categories_enabled(state)


class TestFlags:
    def test_network_toggle_leaves_categories(self):
        narrowed = toggle(FilterState(), "websites")
        state = toggle(narrowed, "allow_network")

        assert state.allow_network
        assert state.enabled_categories() == ("websites",)

    def test_hidden_items_toggle(self):
        state = toggle(FilterState(), "hidden_items")

        assert state.hidden_items
        assert all_categories_enabled(state)
        assert not toggle(state, "hidden_items").hidden_items

    def test_camel_case_aliases(self):
        assert toggle(FilterState(), "allowNetwork").allow_network
        assert toggle(FilterState(), "hiddenItems").hidden_items

    def test_unknown_key(self):
        with pytest.raises(InvalidFilterKey):
            toggle(FilterState(), "music")

    def test_unknown_key_is_a_value_error(self):
        with pytest.raises(ValueError):
            toggle(FilterState(), "")


class TestFilterState:
    def test_defaults(self):
        state = FilterState()

        assert not state.allow_network
        assert not state.hidden_items
        assert all_categories_enabled(state)
        assert enabled_categories_count(state) == len(CATEGORIES)

    def test_from_mapping_accepts_camel_case(self):
        state = FilterState.from_mapping({'allowNetwork': True, 'apps': False, 'bogus': True})

        assert state.allow_network
        assert not state.apps
        assert state.files

    def test_from_empty_mapping(self):
        assert FilterState.from_mapping(None) == FilterState()

    def test_to_dict(self):
        data = FilterState().to_dict()

        assert data['allow_network'] is False
        assert set(CATEGORIES) <= set(data)
