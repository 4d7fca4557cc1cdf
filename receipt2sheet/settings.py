"""Persisted user settings: the webhook and spreadsheet URLs."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

WEBHOOK_KEY = "webhookUrl"
SHEET_KEY = "sheetUrl"

WEBHOOK_PREFIX = "https://script.google.com"
SPREADSHEET_PATTERN = "docs.google.com/spreadsheets"


@dataclass(frozen=True)
class Settings:
    webhook_url: str = ""
    sheet_url: str = ""

    @property
    def is_configured(self) -> bool:
        """True when the webhook would pass the use-time check."""
        return self.webhook_url.strip().startswith(WEBHOOK_PREFIX)


class SettingsStorage(ABC):
    """Durable string key-value storage."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...


class MemoryStorage(SettingsStorage):
    """In-process storage, used by tests and one-shot runs."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage(SettingsStorage):
    """Key-value entries kept in a small JSON file.

    The file is created on the first write and rewritten on every later one.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring unreadable settings file %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self._path)


def load_settings(storage: SettingsStorage) -> Settings:
    """Return the last saved settings, or empty strings if never saved."""
    return Settings(
        webhook_url=storage.get(WEBHOOK_KEY) or "",
        sheet_url=storage.get(SHEET_KEY) or "",
    )


def save_settings(storage: SettingsStorage, webhook: str, sheet: str) -> Settings:
    """Trim and persist both URLs.

    Raises:
        ConfigurationError: If a spreadsheet link was pasted into the webhook
            field. Nothing is written in that case.
    """
    clean_webhook = webhook.strip()
    clean_sheet = sheet.strip()

    if SPREADSHEET_PATTERN in clean_webhook:
        raise ConfigurationError(
            "You pasted a Spreadsheet URL into the Webhook field. "
            "You need the Web App URL from the 'Deploy' menu."
        )

    storage.set(WEBHOOK_KEY, clean_webhook)
    storage.set(SHEET_KEY, clean_sheet)
    logger.info("Settings saved")
    return Settings(webhook_url=clean_webhook, sheet_url=clean_sheet)


def require_webhook(settings: Settings) -> str:
    """Return the webhook URL ready for use.

    Raises:
        ConfigurationError: If the URL is empty or not an Apps Script web app.
    """
    webhook = settings.webhook_url.strip()
    if not webhook.startswith(WEBHOOK_PREFIX):
        raise ConfigurationError(
            "Invalid Webhook URL. It should start with "
            f"'{WEBHOOK_PREFIX}/macros/s/...'"
        )
    return webhook
