"""Configuration management for sagecmt."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigError

CONFIG_DIR_NAME = ".sagecmt"
CONFIG_FILE_NAME = "config.json"

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_MAX_DIFF_LENGTH = 10000

DEFAULT_MODELS = {
    "gemini": {
        "model": "gemini-2.0-flash",
        "endpoint": "https://generativelanguage.googleapis.com/v1beta",
        "api_key_env": "GEMINI_API_KEY",
    },
    "openai": {
        "model": "gpt-4o-mini",
        "endpoint": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
    },
    "codestral": {
        "model": "codestral-latest",
        "endpoint": "https://codestral.mistral.ai/v1",
        "api_key_env": "CODESTRAL_API_KEY",
    },
    "ollama": {
        "model": "llama3.2",
        "endpoint": "http://localhost:11434",
        "api_key_env": "",
    },
}

_FUZZY_ENV_HINTS = {
    "gemini": ["GEMINI", "GOOGLE_API_KEY"],
    "openai": ["OPENAI", "OA_KEY"],
    "codestral": ["CODESTRAL", "MISTRAL"],
    "ollama": ["OLLAMA_HOST"],
}

COMMIT_FORMATS = ("conventional", "angular", "karma", "semantic", "emoji")
COMMIT_LANGUAGES = ("english", "russian")

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class ProviderConfig:
    """Fully resolved settings handed to a provider driver."""

    provider: str
    model: str
    base_url: str
    api_key: Optional[str] = None
    max_retries: int = 3
    initial_backoff: float = 1.0
    max_backoff: float = 10.0
    timeout: float = DEFAULT_REQUEST_TIMEOUT


@dataclass
class Config:
    """Runtime configuration for sagecmt."""

    provider: str
    model: str
    llm_endpoint: str
    api_key_env: str
    git_repo_path: str = "."
    commit_format: str = "conventional"
    commit_language: str = "english"
    use_custom_instructions: bool = False
    custom_instructions: str = ""
    only_staged_changes: bool = False
    auto_commit: bool = False
    auto_push: bool = False
    prompt_for_refs: bool = False
    max_retries: int = 3
    initial_backoff: float = 1.0
    max_backoff: float = 10.0
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_diff_length: int = DEFAULT_MAX_DIFF_LENGTH

    def resolve_api_key(self) -> Optional[str]:
        """Return the API key from the configured environment variable."""
        if not self.api_key_env:
            return None
        return os.environ.get(self.api_key_env)

    def provider_config(self, api_key: Optional[str] = None) -> ProviderConfig:
        """Freeze the provider-related settings for one generation request."""
        return ProviderConfig(
            provider=self.provider,
            model=self.model,
            base_url=self.llm_endpoint.rstrip("/"),
            api_key=api_key,
            max_retries=max(1, int(self.max_retries)),
            initial_backoff=float(self.initial_backoff),
            max_backoff=float(self.max_backoff),
            timeout=float(self.request_timeout),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialise configuration to a dict for persistence."""
        return asdict(self)


def config_home() -> Path:
    """Per-user directory holding credentials (``~/.sagecmt`` by default)."""
    override = os.environ.get("SAGECMT_CONFIG_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME


def _ensure_path(path_like: Optional[Path]) -> Path:
    if path_like is None:
        return Path.cwd().resolve(strict=False)
    return Path(path_like).expanduser().resolve(strict=False)


def _config_file(repo_root: Optional[Path] = None) -> Path:
    return _ensure_path(repo_root) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def config_file_path(repo_root: Optional[Path] = None) -> Path:
    return _config_file(repo_root)


def save_config(config: Config, repo_root: Optional[Path] = None) -> Path:
    """Persist configuration JSON within the repository."""
    cfg_path = _config_file(repo_root)
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    git_path = Path(data.get("git_repo_path") or ".").expanduser()
    if not git_path.is_absolute():
        git_path = _ensure_path(repo_root) / git_path
    data["git_repo_path"] = str(git_path.resolve(strict=False))
    cfg_path.write_text(json.dumps(data, indent=2))
    return cfg_path


def load_persisted_config(
    repo_root: Optional[Path] = None,
) -> Optional[Config]:
    cfg_path = _config_file(repo_root)
    if not cfg_path.exists():
        return None
    try:
        data = json.loads(cfg_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid configuration file {cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid configuration file {cfg_path}: expected object")
    known = {f.name for f in fields(Config)}
    data = {k: v for k, v in data.items() if k in known}
    provider = data.get("provider")
    if provider not in DEFAULT_MODELS:
        return None
    defaults = DEFAULT_MODELS[provider]
    data.setdefault("model", defaults["model"])
    data.setdefault("llm_endpoint", defaults["endpoint"])
    data.setdefault("api_key_env", defaults["api_key_env"])
    return Config(**data)


def detect_available_providers(
    env: Optional[Dict[str, str]] = None,
) -> Dict[str, List[str]]:
    """Return mapping of provider -> matching env vars found."""
    env_dict: Dict[str, str] = dict(env if env is not None else os.environ)
    detected: Dict[str, List[str]] = {p: [] for p in DEFAULT_MODELS}
    for provider, defaults in DEFAULT_MODELS.items():
        key_name = defaults["api_key_env"]
        if key_name and key_name in env_dict:
            detected[provider].append(key_name)
        for env_key in env_dict:
            if env_key in detected[provider]:
                continue
            for hint in _FUZZY_ENV_HINTS.get(provider, []):
                if hint.lower() in env_key.lower():
                    detected[provider].append(env_key)
                    break
    return detected


def _auto_select_provider(
    detected: Optional[Dict[str, List[str]]] = None,
) -> str:
    if detected is None:
        detected = detect_available_providers()
    for provider in ("gemini", "openai", "codestral", "ollama"):
        if detected.get(provider):
            return provider
    return "gemini"


# (config field, environment variable, converter)
_ENV_SETTINGS = (
    ("commit_format", "SAGECMT_COMMIT_FORMAT", str),
    ("commit_language", "SAGECMT_COMMIT_LANGUAGE", str),
    ("use_custom_instructions", "SAGECMT_USE_CUSTOM_INSTRUCTIONS", _truthy),
    ("custom_instructions", "SAGECMT_CUSTOM_INSTRUCTIONS", str),
    ("only_staged_changes", "SAGECMT_ONLY_STAGED", _truthy),
    ("auto_commit", "SAGECMT_AUTO_COMMIT", _truthy),
    ("auto_push", "SAGECMT_AUTO_PUSH", _truthy),
    ("prompt_for_refs", "SAGECMT_PROMPT_FOR_REFS", _truthy),
    ("max_retries", "SAGECMT_MAX_RETRIES", int),
    ("initial_backoff", "SAGECMT_INITIAL_BACKOFF", float),
    ("max_backoff", "SAGECMT_MAX_BACKOFF", float),
    ("request_timeout", "SAGECMT_REQUEST_TIMEOUT", float),
    ("max_diff_length", "SAGECMT_MAX_DIFF_LENGTH", int),
)


_STRING_SETTINGS = {"provider", "model", "llm_endpoint", "api_key_env", "git_repo_path"}


def coerce_setting(name: str, raw: Any) -> Any:
    """Convert a ``key=value`` style setting to the field's type."""
    if name in _STRING_SETTINGS:
        value: Any = str(raw)
    else:
        for field_name, _env_var, convert in _ENV_SETTINGS:
            if field_name == name:
                try:
                    value = convert(raw)
                except (TypeError, ValueError) as exc:
                    raise ConfigError(f"Invalid value for {name}: {raw!r}") from exc
                break
        else:
            raise ConfigError(f"Unknown setting: {name}")
    if name == "provider" and value not in DEFAULT_MODELS:
        raise ConfigError(f"Unsupported provider '{value}'")
    if name == "commit_format" and value not in COMMIT_FORMATS:
        raise ConfigError(
            f"Unknown commit format '{value}'. Choose one of: {', '.join(COMMIT_FORMATS)}"
        )
    return value


def load_config(
    *,
    repo_root: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Config:
    """Build configuration from config file, environment and overrides.

    Precedence per setting: explicit overrides, then the repository's
    persisted ``.sagecmt/config.json``, then ``SAGECMT_*`` environment
    variables, then built-in defaults.
    """

    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    repo_root = _ensure_path(repo_root)
    persisted = load_persisted_config(repo_root)

    provider_override = overrides.get("provider") or os.environ.get("SAGECMT_PROVIDER")
    if persisted and not provider_override:
        provider = persisted.provider
    else:
        provider = provider_override or _auto_select_provider()
    if provider not in DEFAULT_MODELS:
        raise ConfigError(
            f"Unsupported provider '{provider}'. "
            f"Choose one of: {', '.join(DEFAULT_MODELS)}"
        )
    defaults = DEFAULT_MODELS[provider]
    same_provider = persisted is not None and persisted.provider == provider

    # Only reuse persisted provider settings for the same provider
    model = (
        overrides.get("model")
        or (persisted.model if same_provider else None)
        or os.environ.get("SAGECMT_MODEL")
        or defaults["model"]
    )
    endpoint = (
        overrides.get("endpoint")
        or (persisted.llm_endpoint if same_provider else None)
        or os.environ.get("SAGECMT_ENDPOINT")
        or defaults["endpoint"]
    )
    api_key_env = (
        overrides.get("api_key_env")
        or (persisted.api_key_env if same_provider else None)
        or defaults["api_key_env"]
    )
    git_repo_path = (
        overrides.get("repo_path")
        or os.environ.get("SAGECMT_GIT_REPO_PATH")
        or (persisted.git_repo_path if persisted else str(repo_root))
    )

    config = Config(
        provider=provider,
        model=str(model),
        llm_endpoint=str(endpoint),
        api_key_env=str(api_key_env),
        git_repo_path=str(git_repo_path),
    )

    for name, env_var, convert in _ENV_SETTINGS:
        if name in overrides:
            raw: Any = overrides[name]
        elif persisted is not None:
            raw = getattr(persisted, name)
        elif os.environ.get(env_var) is not None:
            raw = os.environ[env_var]
        else:
            continue
        try:
            setattr(config, name, convert(raw))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for {name}: {raw!r}") from exc

    return config

