import json

import pytest

from mini_assistant.core.config import DEFAULT_API_BASE_URL
from mini_assistant.services.settings_manager import (
    MAX_TOKENS_INPUT_ERROR,
    SettingsManager,
    affects_assistants,
    parse_max_tokens_input,
)


def test_missing_file_loads_defaults_and_writes_them(settings_path):
    manager = SettingsManager(settings_path)

    settings = manager.get_settings()
    assert settings.apiKey1 == ""
    assert settings.apiBaseUrl1 == DEFAULT_API_BASE_URL
    assert json.loads(settings_path.read_text(encoding="utf-8"))["textProvider"] == 1


def test_legacy_file_is_migrated_and_rewritten(settings_path):
    settings_path.write_text(
        json.dumps({"openAIapiKey": "sk-old", "apiBaseUrl": "https://proxy.example/v1", "imgFolder": "x"}),
        encoding="utf-8",
    )

    manager = SettingsManager(settings_path)

    settings = manager.get_settings()
    assert settings.apiKey1 == "sk-old"
    assert settings.apiBaseUrl1 == "https://proxy.example/v1"
    stored = json.loads(settings_path.read_text(encoding="utf-8"))
    assert "openAIapiKey" not in stored
    assert "imgFolder" not in stored


def test_corrupt_file_falls_back_to_defaults(settings_path):
    settings_path.write_text("{not json", encoding="utf-8")

    settings = SettingsManager(settings_path).get_settings()

    assert settings.apiKey1 == ""


def test_invalid_field_types_reset_only_those_fields(settings_path):
    settings_path.write_text(
        json.dumps({"apiKey1": "keep-me", "replaceSelection": {"nested": True}}),
        encoding="utf-8",
    )

    settings = SettingsManager(settings_path).get_settings()

    assert settings.apiKey1 == "keep-me"
    assert settings.replaceSelection is True


def test_save_trims_and_normalizes(settings_manager, settings_path):
    updated = settings_manager.save_settings(
        {"apiKey2": "  sk-two  ", "textProvider": "2", "maxTokens": " 256 ", "unknown": "ignored"}
    )

    assert updated.apiKey2 == "sk-two"
    assert updated.textProvider == 2
    assert updated.maxTokens == 256
    stored = json.loads(settings_path.read_text(encoding="utf-8"))
    assert stored["apiKey2"] == "sk-two"
    assert "unknown" not in stored


@pytest.mark.parametrize("value", ["abc", "-3", " -1.5", True])
def test_save_rejects_bad_max_tokens_and_keeps_previous(settings_manager, value):
    settings_manager.save_settings({"maxTokens": 100})

    with pytest.raises(ValueError, match="Max tokens"):
        settings_manager.save_settings({"maxTokens": value})

    assert settings_manager.get_settings().maxTokens == 100


@pytest.mark.parametrize("value, expected", [("1.5", 1), ("12abc", 12), (" 300 tokens", 300), ("0", 0)])
def test_max_tokens_reads_leading_integer(value, expected):
    assert parse_max_tokens_input(value) == expected


def test_save_stores_leading_integer_of_form_text(settings_manager):
    assert settings_manager.save_settings({"maxTokens": "300 tokens"}).maxTokens == 300


def test_blank_max_tokens_means_omit():
    assert parse_max_tokens_input("") == 0
    assert parse_max_tokens_input(None) == 0
    assert parse_max_tokens_input("   ") == 0


def test_max_tokens_error_message():
    with pytest.raises(ValueError) as excinfo:
        parse_max_tokens_input("ten")

    assert str(excinfo.value) == MAX_TOKENS_INPUT_ERROR


def test_get_settings_returns_copy(settings_manager):
    settings = settings_manager.get_settings()
    settings.apiKey1 = "mutated"

    assert settings_manager.get_settings().apiKey1 == ""


def test_reset_to_default(settings_manager):
    settings_manager.save_settings({"apiKey1": "sk", "replaceSelection": False})

    settings = settings_manager.reset_to_default()

    assert settings.apiKey1 == ""
    assert settings.replaceSelection is True


def test_affects_assistants():
    assert affects_assistants({"apiKey1": "x"})
    assert affects_assistants({"maxTokens": 10})
    assert not affects_assistants({"replaceSelection": False, "language": "en"})
