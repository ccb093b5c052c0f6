"""Tests for the key/value table."""

import pytest

from litetable.db import Database
from litetable.maptable import MapTable


@pytest.fixture
def settings():
    db = Database(":memory:")
    m = MapTable(db, "settings")
    m.create()
    yield m
    db.close()


class TestMapTable:
    def test_set_and_get(self, settings: MapTable):
        settings.set("color", "red")
        assert settings.get("color") == "red"
        assert settings.get("missing") is None

    def test_overwrite(self, settings: MapTable):
        settings.set("color", "red")
        settings.set("color", "blue")
        assert settings.get("color") == "blue"
        assert list(settings.items()) == [("color", "blue")]

    def test_delete(self, settings: MapTable):
        settings.set("a", "1")
        assert settings.delete("a") == 1
        assert settings.delete("a") == 0
        assert "a" not in settings

    def test_items_sorted(self, settings: MapTable):
        for key in ["b", "c", "a"]:
            settings.set(key, key.upper())
        assert list(settings.items()) == [("a", "A"), ("b", "B"), ("c", "C")]
        assert "b" in settings

    def test_create_if_not_exists(self, settings: MapTable):
        settings.set("kept", "yes")
        again = MapTable(settings.db, "settings")
        assert not again.create_if_not_exists().was_created
        assert not again.create().was_updated
        assert again.get("kept") == "yes"

    def test_keys_that_look_like_operators(self, settings: MapTable):
        settings.set("$HOME", "/root")
        settings.set("$HOME", "/home/me")
        settings.set("$or", "x")
        assert settings.get("$HOME") == "/home/me"
        assert "$or" in settings
        assert settings.delete("$or") == 1
        assert list(settings.items()) == [("$HOME", "/home/me")]
