"""Tests for persisted settings and the assistant input history."""

import pytest

from micasa.core.chat import CHAT_HISTORY_MAX
from micasa.core.types import SettingKey
from micasa.exceptions import CorruptionError, ValidationError


class TestSettings:
    """Tests for store.settings."""

    def test_get_unknown_key(self, store):
        """A key never written reads as None."""
        assert store.settings.get("nope") is None

    def test_last_write_wins(self, store):
        """put replaces the previous value."""
        store.settings.put("theme", "dark")
        store.settings.put("theme", "light")

        assert store.settings.get("theme") == "light"
        assert [s.key for s in store.settings.list()] == ["theme"]

    def test_blank_key_rejected(self, store):
        with pytest.raises(ValidationError):
            store.settings.put("  ", "x")

    def test_show_dashboard_defaults_true(self, store):
        """The dashboard is shown until turned off."""
        assert store.settings.get_show_dashboard() is True

        store.settings.put_show_dashboard(False)
        assert store.settings.get_show_dashboard() is False
        assert store.settings.get(SettingKey.SHOW_DASHBOARD) == "false"

    @pytest.mark.parametrize("raw, expected", [
        ("1", True), ("ON", True), ("yes", True), ("0", False), ("Off", False), ("no", False),
    ])
    def test_show_dashboard_tokens(self, store, raw, expected):
        """Boolean tokens written by other tools are understood."""
        store.settings.put(SettingKey.SHOW_DASHBOARD, raw)
        assert store.settings.get_show_dashboard() is expected

    def test_show_dashboard_garbage_is_corruption(self, store):
        """An unparseable stored value is corruption, not a default."""
        store.settings.put(SettingKey.SHOW_DASHBOARD, "maybe")
        with pytest.raises(CorruptionError):
            store.settings.get_show_dashboard()

    def test_last_model(self, store):
        """The last model name is trimmed, and blank means unset."""
        assert store.settings.get_last_model() is None

        store.settings.put_last_model("  qwen3:8b ")
        assert store.settings.get_last_model() == "qwen3:8b"

        store.settings.put_last_model("   ")
        assert store.settings.get_last_model() is None


class TestChatHistory:
    """Tests for store.chat."""

    def test_consecutive_duplicate_stored_once(self, store):
        """Appending the same text twice in a row keeps one entry."""
        assert store.chat.append("how old is the furnace?") is True
        assert store.chat.append("how old is the furnace?") is False

        assert store.chat.load_texts() == ["how old is the furnace?"]

    def test_non_consecutive_duplicates_kept(self, store):
        """Only repeats of the immediately preceding entry are skipped."""
        for text in ("a", "b", "a"):
            store.chat.append(text)
        assert store.chat.load_texts() == ["a", "b", "a"]

    def test_blank_input_ignored(self, store):
        assert store.chat.append("   ") is False
        assert store.chat.load() == []

    def test_history_capped_keeping_most_recent(self, store):
        """210 distinct inputs leave the most recent 200."""
        for i in range(210):
            store.chat.append(f"question {i}")

        texts = store.chat.load_texts()
        assert len(texts) == CHAT_HISTORY_MAX
        assert texts[0] == "question 10"
        assert texts[-1] == "question 209"
