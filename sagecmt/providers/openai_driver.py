from __future__ import annotations

import logging
from typing import Any, Optional

import openai

from ..exceptions import LLMError, MalformedProviderResponseError, TransportFailureError
from .base import BaseDriver

logger = logging.getLogger(__name__)


class OpenAIDriver(BaseDriver):
    """Driver for OpenAI and OpenAI-compatible chat completions.

    Requests go through the ``openai`` SDK with its own retries disabled so
    the shared attempt loop owns backoff. Any compatible server works by
    pointing ``base_url`` at it.
    """

    name = "openai"
    label = "OpenAI"

    def _sdk(self) -> openai.OpenAI:
        # The SDK refuses to construct without a key; callers check first.
        return openai.OpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key or "",
            timeout=self.config.timeout,
            max_retries=0,
            http_client=self._client,
        )

    def _build_request(self, prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.7,
            "max_tokens": 1024,
        }
        return f"{self.config.base_url}/chat/completions", {}, payload

    def _extract_text(self, data: Any) -> Optional[str]:
        try:
            content = data.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            return None
        if isinstance(content, list):
            # some compatible servers return content fragments
            fragments = []
            for part in content:
                if isinstance(part, dict):
                    fragments.append(str(part.get("text") or ""))
                else:
                    fragments.append(str(getattr(part, "text", "") or ""))
            return "".join(fragments)
        return content if isinstance(content, str) else None

    def _invoke(self, prompt: str) -> str:
        _, _, payload = self._build_request(prompt)
        logger.debug("OpenAI chat completion (model=%s)", self.config.model)
        try:
            resp = self._sdk().chat.completions.create(**payload)
        except openai.APITimeoutError as exc:
            raise TransportFailureError(
                f"OpenAI request timed out after {self.config.timeout:g}s"
            ) from exc
        except openai.APIConnectionError as exc:
            raise TransportFailureError(
                f"Could not connect to OpenAI at {self.config.base_url}: {exc}"
            ) from exc
        except openai.APIStatusError as exc:
            body = exc.response.text if exc.response is not None else str(exc)
            raise self._classify(exc.status_code, body) from exc
        except openai.OpenAIError as exc:
            raise LLMError(f"OpenAI client error: {exc}") from exc
        text = self._extract_text(resp)
        if text is None:
            raise MalformedProviderResponseError("Invalid response format from OpenAI API")
        return text

    def list_models(self) -> list[dict[str, Any]]:
        try:
            page = self._sdk().models.list()
        except openai.OpenAIError as exc:
            logger.debug("OpenAI model listing failed: %s", exc)
            return []
        out: list[dict[str, Any]] = []
        for model in getattr(page, "data", []) or []:
            mid = getattr(model, "id", None)
            if mid:
                out.append({"id": str(mid), "owned_by": getattr(model, "owned_by", "openai")})
        return out
