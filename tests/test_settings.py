"""Tests for the persisted webhook/sheet settings."""

import json

import pytest

from receipt2sheet.errors import ConfigurationError
from receipt2sheet.settings import (
    SHEET_KEY,
    WEBHOOK_KEY,
    JsonFileStorage,
    MemoryStorage,
    Settings,
    load_settings,
    require_webhook,
    save_settings,
)

WEBHOOK = "https://script.google.com/macros/s/AKfy123/exec"
SHEET = "https://docs.google.com/spreadsheets/d/abc/edit"


class TestSaveLoad:
    def test_load_never_saved(self):
        settings = load_settings(MemoryStorage())
        assert settings == Settings(webhook_url="", sheet_url="")

    def test_save_then_load_trims(self):
        storage = MemoryStorage()
        saved = save_settings(storage, f"  {WEBHOOK}\n", f"\t{SHEET}  ")

        assert saved.webhook_url == WEBHOOK
        assert saved.sheet_url == SHEET
        assert load_settings(storage) == Settings(WEBHOOK, SHEET)

    def test_save_overwrites(self):
        storage = MemoryStorage()
        save_settings(storage, WEBHOOK, SHEET)
        save_settings(storage, WEBHOOK + "2", "")

        settings = load_settings(storage)
        assert settings.webhook_url == WEBHOOK + "2"
        assert settings.sheet_url == ""

    def test_spreadsheet_url_in_webhook_rejected(self):
        """A sheet link pasted into the webhook field leaves storage untouched."""
        storage = MemoryStorage({WEBHOOK_KEY: WEBHOOK, SHEET_KEY: SHEET})

        with pytest.raises(ConfigurationError, match="Spreadsheet URL"):
            save_settings(storage, SHEET, "https://example.com/other")

        assert storage.data == {WEBHOOK_KEY: WEBHOOK, SHEET_KEY: SHEET}

    def test_spreadsheet_url_rejected_on_first_save(self):
        storage = MemoryStorage()
        with pytest.raises(ConfigurationError):
            save_settings(storage, SHEET, SHEET)
        assert storage.data == {}


class TestRequireWebhook:
    def test_valid_prefix(self):
        assert require_webhook(Settings(webhook_url=f" {WEBHOOK} ")) == WEBHOOK

    @pytest.mark.parametrize(
        "url", ["", "http://script.google.com/macros/s/x", "https://example.com/hook"]
    )
    def test_invalid(self, url):
        with pytest.raises(ConfigurationError, match="Invalid Webhook URL"):
            require_webhook(Settings(webhook_url=url))

    def test_is_configured(self):
        assert Settings(webhook_url=WEBHOOK).is_configured
        assert not Settings(webhook_url="https://example.com").is_configured


class TestJsonFileStorage:
    def test_created_on_first_save(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        storage = JsonFileStorage(path)
        assert load_settings(storage) == Settings()
        assert not path.exists()

        save_settings(storage, WEBHOOK, SHEET)

        assert json.loads(path.read_text()) == {
            WEBHOOK_KEY: WEBHOOK,
            SHEET_KEY: SHEET,
        }

    def test_survives_new_instance(self, tmp_path):
        path = tmp_path / "settings.json"
        save_settings(JsonFileStorage(path), WEBHOOK, SHEET)

        assert load_settings(JsonFileStorage(path)) == Settings(WEBHOOK, SHEET)

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        assert load_settings(JsonFileStorage(path)) == Settings()

    def test_non_utf8_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_bytes(b"\xff\xfe{bad")
        storage = JsonFileStorage(path)
        assert load_settings(storage) == Settings()

        storage.set("webhookUrl", "https://script.google.com/x")
        assert storage.get("webhookUrl") == "https://script.google.com/x"

    def test_expands_user(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        storage = JsonFileStorage("~/settings.json")
        assert storage.path == tmp_path / "settings.json"
