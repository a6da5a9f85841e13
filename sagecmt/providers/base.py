from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import httpx

from ..config import ProviderConfig
from ..exceptions import (
    AuthenticationRejectedError,
    ClientRequestError,
    EmptyGeneratedMessageError,
    InvalidRequestError,
    LLMError,
    MalformedProviderResponseError,
    MissingAPIKeyError,
    QuotaOrBillingError,
    RateLimitedError,
    ServerError,
    TransportFailureError,
)

logger = logging.getLogger(__name__)

# Returns a fresh API key, or None when the user declined to provide one
CredentialRefresher = Callable[[], Optional[str]]
# (message, percentage increment)
ProgressReporter = Callable[[str, int], None]
# (attempt that failed, delay in seconds, error)
RetryListener = Callable[[int, float, LLMError], None]


@dataclass(frozen=True)
class CommitMessage:
    text: str
    model: str


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of a single request attempt: a message or a classified error."""

    attempt: int
    message: Optional[CommitMessage] = None
    error: Optional[LLMError] = None

    @property
    def ok(self) -> bool:
        return self.message is not None


def _error_detail(body: str) -> str:
    if not body:
        return ""
    try:
        data = json.loads(body)
    except ValueError:
        return body.strip()[:200]
    if isinstance(data, dict):
        err = data.get("error", data)
        if isinstance(err, dict):
            return str(err.get("message") or err.get("detail") or "")[:200]
        return str(err)[:200]
    return ""


def classify_status(status: int, body: str = "", provider: str = "Provider") -> LLMError:
    """Map an HTTP error status to the matching ``LLMError`` subclass."""
    detail = _error_detail(body)
    suffix = f": {detail}" if detail else ""
    if status == 401:
        return AuthenticationRejectedError(
            f"{provider} rejected the API key (401). Please check your API key{suffix}",
            status_code=status,
        )
    if status == 402:
        return QuotaOrBillingError(
            f"{provider} requires payment or billing action (402){suffix}",
            status_code=status,
        )
    if status == 403:
        return AuthenticationRejectedError(
            f"{provider} denied access (403). Check the key's permissions{suffix}",
            status_code=status,
        )
    if status == 422:
        return InvalidRequestError(
            f"{provider} could not process the request (422); "
            f"the diff may be too large{suffix}",
            status_code=status,
        )
    if status == 429:
        return RateLimitedError(
            f"{provider} rate limit exceeded (429){suffix}", status_code=status
        )
    if status >= 500:
        return ServerError(f"{provider} server error ({status}){suffix}", status_code=status)
    return ClientRequestError(
        f"{provider} request failed ({status}){suffix}", status_code=status
    )


def dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None when any step is missing."""
    current = data
    for key in path:
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError):
            return None
    return current


class BaseDriver(ABC):
    """Abstract base for one text-generation backend.

    Subclasses describe the request (``_build_request``) and where the
    text lives in the response (``_extract_text``); the retry loop,
    status classification and cleanup are shared here.
    """

    name: str = ""
    label: str = ""
    supports_reauth: bool = False
    requires_api_key: bool = True

    def __init__(
        self,
        config: ProviderConfig,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        credential_refresher: Optional[CredentialRefresher] = None,
        reporter: Optional[ProgressReporter] = None,
        on_retry: Optional[RetryListener] = None,
    ) -> None:
        self.config = config
        self._client = client
        self._sleep = sleep
        self._credential_refresher = credential_refresher
        self._reporter = reporter
        self._on_retry = on_retry
        self.attempts: list[AttemptResult] = []

    # ------------------------------------------------------------------
    # Provider specifics
    # ------------------------------------------------------------------
    @abstractmethod
    def _build_request(self, prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        """Return (url, headers, json payload) for one generation call."""
        raise NotImplementedError

    @abstractmethod
    def _extract_text(self, data: Any) -> Optional[str]:
        """Return the generated text from a decoded response, or None."""
        raise NotImplementedError

    @abstractmethod
    def list_models(self) -> list[dict[str, Any]]:
        """Return models available at the backend, each with an 'id' key.

        Network or auth failures yield an empty list.
        """
        raise NotImplementedError

    def _classify(self, status: int, body: str) -> LLMError:
        return classify_status(status, body, self.label or self.name)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _post(self, url: str, headers: dict[str, str], payload: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return self._client.post(
                url, headers=headers, json=payload, timeout=self.config.timeout
            )
        return httpx.post(url, headers=headers, json=payload, timeout=self.config.timeout)

    def _get(self, url: str, headers: Optional[dict[str, str]] = None) -> httpx.Response:
        if self._client is not None:
            return self._client.get(url, headers=headers, timeout=self.config.timeout)
        return httpx.get(url, headers=headers, timeout=self.config.timeout)

    def _get_json(self, url: str, headers: Optional[dict[str, str]] = None) -> Any:
        """GET helper for model listings; errors collapse to None."""
        try:
            resp = self._get(url, headers=headers)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("%s model listing failed: %s", self.label, exc)
            return None

    def _invoke(self, prompt: str) -> str:
        url, headers, payload = self._build_request(prompt)
        logger.debug("POST %s (model=%s)", url, self.config.model)
        try:
            response = self._post(url, headers, payload)
        except httpx.TimeoutException as exc:
            raise TransportFailureError(
                f"{self.label} request timed out after {self.config.timeout:g}s"
            ) from exc
        except httpx.TransportError as exc:
            raise TransportFailureError(
                f"Could not connect to {self.label} at {self.config.base_url}: {exc}"
            ) from exc
        if response.status_code >= 400:
            raise self._classify(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedProviderResponseError(
                f"{self.label} returned a non-JSON response"
            ) from exc
        text = self._extract_text(data)
        if not isinstance(text, str):
            raise MalformedProviderResponseError(
                f"Invalid response format from {self.label} API"
            )
        return text

    # ------------------------------------------------------------------
    # Retry loop
    # ------------------------------------------------------------------
    def backoff_delay(self, attempt: int) -> float:
        return min(
            self.config.initial_backoff * 2 ** (attempt - 1),
            self.config.max_backoff,
        )

    def _report(self, message: str, increment: int = 0) -> None:
        if self._reporter is not None:
            self._reporter(message, increment)

    def _attempt(self, prompt: str, attempt: int) -> AttemptResult:
        # cleanup lives in the dispatcher module; imported lazily
        from sagecmt.llm import clean_commit_message

        try:
            raw = self._invoke(prompt)
            text = clean_commit_message(raw)
            if not text:
                raise EmptyGeneratedMessageError()
        except LLMError as exc:
            return AttemptResult(attempt=attempt, error=exc)
        return AttemptResult(
            attempt=attempt, message=CommitMessage(text=text, model=self.config.model)
        )

    def _refresh_credentials(self) -> bool:
        if self._credential_refresher is None:
            return False
        new_key = self._credential_refresher()
        if not new_key:
            return False
        self.config = replace(self.config, api_key=new_key)
        return True

    def generate(self, prompt: str) -> CommitMessage:
        """Generate one cleaned commit message, retrying transient failures."""
        if self.requires_api_key and not self.config.api_key:
            raise MissingAPIKeyError(
                f"{self.label} API key is not configured. "
                f"Run 'sagecmt set-key {self.name}'."
            )
        self.attempts = []
        max_attempts = max(1, self.config.max_retries)
        reauthenticated = False
        attempt = 0
        while True:
            attempt += 1
            self._report(f"Attempt {attempt}: Generating commit message...", 10)
            result = self._attempt(prompt, attempt)
            self.attempts.append(result)
            error = result.error
            if error is None:
                logger.info(
                    "%s produced a commit message on attempt %d", self.label, attempt
                )
                return result.message

            logger.warning("%s attempt %d failed: %s", self.label, attempt, error)

            if (
                error.status_code == 401
                and self.supports_reauth
                and not reauthenticated
            ):
                reauthenticated = True
                if not self._refresh_credentials():
                    raise error
                # one extra attempt with the new key
                max_attempts = max(max_attempts, attempt + 1)
                continue

            if not error.retryable or attempt >= max_attempts:
                raise error

            delay = self.backoff_delay(attempt)
            if self._on_retry is not None:
                self._on_retry(attempt, delay, error)
            self._report(f"Retrying in {delay:g} seconds...", 0)
            self._sleep(delay)
