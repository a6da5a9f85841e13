"""Credential storage for provider API keys.

Environment variables win over stored credentials so CI and one-off
invocations never need to touch the credentials file.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional, Protocol

from .config import DEFAULT_MODELS, config_home
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CREDENTIALS_FILE_NAME = "credentials.json"

_KEY_FORMAT = re.compile(r"^[A-Za-z0-9_-]+$")


class SecretStore(Protocol):
    """get/set/delete a credential string scoped per provider."""

    def get(self, provider: str) -> Optional[str]: ...

    def set(self, provider: str, value: str) -> None: ...

    def delete(self, provider: str) -> None: ...


class CredentialStore:
    """JSON-file backed secret store under the user config directory."""

    def __init__(
        self,
        path: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        self.path = path or (config_home() / CREDENTIALS_FILE_NAME)
        self._env = env if env is not None else os.environ

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Corrupt credentials file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug("could not restrict permissions on %s", self.path)

    def get(self, provider: str) -> Optional[str]:
        env_name = DEFAULT_MODELS.get(provider, {}).get("api_key_env")
        if env_name:
            from_env = self._env.get(env_name)
            if from_env:
                return from_env
        return self._read().get(provider) or None

    def set(self, provider: str, value: str) -> None:
        data = self._read()
        data[provider] = value
        self._write(data)
        logger.info("stored API key for %s", provider)

    def delete(self, provider: str) -> None:
        data = self._read()
        if data.pop(provider, None) is not None:
            self._write(data)
            logger.info("removed stored API key for %s", provider)


class MemorySecretStore:
    """In-process store; used for tests and non-persistent sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, provider: str) -> Optional[str]:
        return self._data.get(provider)

    def set(self, provider: str, value: str) -> None:
        self._data[provider] = value

    def delete(self, provider: str) -> None:
        self._data.pop(provider, None)


def validate_api_key(provider: str, key: str, custom_endpoint: bool = False) -> Optional[str]:
    """Return an error message for a malformed key, or None when acceptable."""
    if not key or not key.strip():
        return "API key cannot be empty"
    if provider == "openai" and not custom_endpoint:
        if not key.startswith("sk-"):
            return 'Invalid OpenAI API key format. Key should start with "sk-"'
        return None
    if not _KEY_FORMAT.match(key):
        return "API key contains invalid characters"
    return None
