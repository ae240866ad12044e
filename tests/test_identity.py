"""Tests for identifier validity and the identity store."""

import pytest

from playvested.identity import LEGACY_UNSET_ID, IdentityStore, is_valid, normalize_identifier

SAMPLE_IDS = ["a", "pid-123", " ", "0", "0" * 23, "0" * 25, "null", "game/with/slash", "ü"]


@pytest.mark.unit
@pytest.mark.parametrize("identifier", [None, "", LEGACY_UNSET_ID])
def test_unset_values_are_invalid(identifier):
    assert is_valid(identifier) is False
    assert normalize_identifier(identifier) is None


@pytest.mark.unit
@pytest.mark.parametrize("identifier", SAMPLE_IDS)
def test_every_other_string_is_valid(identifier):
    assert is_valid(identifier) is True
    assert normalize_identifier(identifier) == identifier


class TestIdentityStore:
    """Tests for IdentityStore merge rules."""

    def test_initial_store_is_empty(self):
        store = IdentityStore()

        assert store.publisher_id is None
        assert store.application_id is None
        assert store.player_id is None
        assert store.charity_name == ""
        assert not (store.has_publisher or store.has_application or store.has_player)

    def test_set_if_valid_assigns_valid_value(self):
        store = IdentityStore()

        assert store.set_if_valid("application_id", "app-1") is True
        assert store.application_id == "app-1"
        assert store.has_application is True

    @pytest.mark.parametrize("garbage", [None, "", LEGACY_UNSET_ID])
    @pytest.mark.parametrize("field_name", ["publisher_id", "application_id", "player_id"])
    def test_set_if_valid_never_downgrades(self, field_name, garbage):
        store = IdentityStore()
        store.set_if_valid(field_name, "established")

        assert store.set_if_valid(field_name, garbage) is False
        assert getattr(store, field_name) == "established"

    def test_set_if_valid_replaces_with_another_valid_value(self):
        store = IdentityStore(publisher_id="pub-1")

        store.set_if_valid("publisher_id", "pub-2")

        assert store.publisher_id == "pub-2"

    def test_unknown_field_raises(self):
        store = IdentityStore()

        with pytest.raises(ValueError, match="unknown identity field"):
            store.set_if_valid("charity_name", "RedCross")

    def test_bind_player_refuses_sentinel(self):
        store = IdentityStore()

        assert store.bind_player(LEGACY_UNSET_ID) is False
        assert store.player_id is None

    def test_clear_player_and_charity(self):
        store = IdentityStore(player_id="p1", charity_name="WWF")

        store.clear_player()
        store.clear_charity()

        assert store.player_id is None
        assert store.charity_name == ""
