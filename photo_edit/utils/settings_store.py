"""Key-value store for the user's custom API endpoint settings.

The record has the shape ``{"url": ..., "key": ...}``. The orchestration
layer only reads it, once per call, so edits made between calls take effect
on the next request.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..models.schemas import TransportConfig
from .logger import get_logger

logger = get_logger(__name__)


def _from_record(record: dict) -> TransportConfig:
    return TransportConfig(
        endpoint_url=record.get("url") or None,
        api_key=record.get("key") or None,
    )


def _to_record(settings: TransportConfig) -> dict:
    return {"url": settings.endpoint_url or "", "key": settings.api_key or ""}


class SettingsStore(ABC):
    """Abstract settings store."""

    @abstractmethod
    def get(self) -> TransportConfig:
        """Read the current settings; never cached."""

    @abstractmethod
    def save(self, settings: TransportConfig) -> None:
        """Persist new settings."""

    @abstractmethod
    def reset(self) -> None:
        """Forget custom settings so the default provider is used."""


class InMemorySettingsStore(SettingsStore):
    """Process-local store, used for tests and embedding."""

    def __init__(self, settings: Optional[TransportConfig] = None):
        self._record = _to_record(settings) if settings else None

    def get(self) -> TransportConfig:
        if self._record is None:
            return TransportConfig()
        return _from_record(self._record)

    def save(self, settings: TransportConfig) -> None:
        self._record = _to_record(settings)

    def reset(self) -> None:
        self._record = None


class JsonFileSettingsStore(SettingsStore):
    """Settings kept in a small JSON file on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self) -> TransportConfig:
        if not self.path.exists():
            return TransportConfig()

        try:
            record = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(record, dict):
                raise ValueError("settings record is not an object")
            return _from_record(record)
        except (OSError, ValueError) as e:
            # Unreadable record reads as "no custom endpoint"
            logger.error(
                "Could not parse API settings, using default provider",
                extra={"path": str(self.path), "error": str(e)}
            )
            return TransportConfig()

    def save(self, settings: TransportConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(_to_record(settings)), encoding="utf-8")
        tmp_path.replace(self.path)
        logger.info(
            "API settings saved",
            extra={"path": str(self.path), "custom_endpoint": settings.is_custom}
        )

    def reset(self) -> None:
        if self.path.exists():
            self.path.unlink()
        logger.info("API settings reset", extra={"path": str(self.path)})
