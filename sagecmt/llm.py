"""Dispatch generation requests to the configured provider driver."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import replace
from typing import Any, Callable, Optional

import httpx

from .config import DEFAULT_MODELS, Config
from .credentials import SecretStore, validate_api_key
from .diffparse import truncate_diff
from .exceptions import ConfigError
from .host import Host
from .prompts import GenerationRequest, build_prompt
from .providers import DRIVERS
from .providers.base import BaseDriver, CommitMessage, ProgressReporter, RetryListener

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[^\n]*\n(.*?)\n?```$", re.DOTALL)
_PREAMBLE_RE = re.compile(
    r"^(here'?s? (is )?(a |the )?)?commit message:?\s*", re.IGNORECASE
)
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_QUOTES = ('"', "'")


def clean_commit_message(raw: str) -> str:
    """Strip chat-style wrapping from model output.

    Removes a wrapping code fence, a leading "here is a commit message:"
    preamble and wrapping quotes, then collapses runs of blank lines.
    Already clean text is returned unchanged.
    """
    text = (raw or "").strip()
    fence = _FENCE_RE.match(text)
    if fence:
        text = fence.group(1).strip()
    text = _PREAMBLE_RE.sub("", text, count=1).strip()
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] == text[0]:
        text = text[1:-1].strip()
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


class LLMClient:
    """Build prompts and hand them to the driver for ``config.provider``."""

    def __init__(
        self,
        config: Config,
        secrets: SecretStore,
        host: Optional[Host] = None,
        sleep: Callable[[float], None] = time.sleep,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if config.provider not in DRIVERS:
            raise ConfigError(f"Unsupported provider: {config.provider}")
        self.config = config
        self.secrets = secrets
        self.host = host
        self._sleep = sleep
        self._http_client = http_client

    @property
    def provider_label(self) -> str:
        return DRIVERS[self.config.provider].label

    def _custom_endpoint(self) -> bool:
        default = DEFAULT_MODELS.get(self.config.provider, {}).get("endpoint", "")
        return self.config.llm_endpoint.rstrip("/") != default.rstrip("/")

    def resolve_api_key(self) -> Optional[str]:
        return self.secrets.get(self.config.provider) or self.config.resolve_api_key()

    def _prompt_for_key(self) -> Optional[str]:
        if self.host is None:
            return None
        entered = self.host.prompt_input(
            f"Enter your {self.provider_label} API key", password=True
        )
        if not entered or not entered.strip():
            return None
        key = entered.strip()
        problem = validate_api_key(self.config.provider, key, self._custom_endpoint())
        if problem:
            self.host.show_warning(problem, [])
            return None
        self.secrets.set(self.config.provider, key)
        return key

    def _refresh_credentials(self) -> Optional[str]:
        """Forget the rejected key and ask the host for a new one."""
        logger.info("Stored %s key was rejected; prompting again", self.config.provider)
        self.secrets.delete(self.config.provider)
        return self._prompt_for_key()

    def build_driver(
        self,
        reporter: Optional[ProgressReporter] = None,
        on_retry: Optional[RetryListener] = None,
    ) -> BaseDriver:
        driver_cls = DRIVERS[self.config.provider]
        api_key = self.resolve_api_key()
        if api_key is None and driver_cls.requires_api_key:
            api_key = self._prompt_for_key()
        return driver_cls(
            self.config.provider_config(api_key),
            client=self._http_client,
            sleep=self._sleep,
            credential_refresher=self._refresh_credentials,
            reporter=reporter,
            on_retry=on_retry,
        )

    def generate(
        self,
        request: GenerationRequest,
        reporter: Optional[ProgressReporter] = None,
        on_retry: Optional[RetryListener] = None,
    ) -> CommitMessage:
        diff_text, truncated = truncate_diff(
            request.diff_text, self.config.max_diff_length
        )
        if truncated:
            logger.info("Diff truncated to %d characters", self.config.max_diff_length)
            request = replace(request, diff_text=diff_text)
        prompt = build_prompt(request)
        driver = self.build_driver(reporter=reporter, on_retry=on_retry)
        logger.debug(
            "Dispatching %d-character prompt to %s (%s)",
            len(prompt),
            self.config.provider,
            self.config.model,
        )
        return driver.generate(prompt)

    def list_models(self) -> list[dict[str, Any]]:
        driver_cls = DRIVERS[self.config.provider]
        driver = driver_cls(
            self.config.provider_config(self.resolve_api_key()),
            client=self._http_client,
        )
        return driver.list_models()
