from __future__ import annotations

from typing import Any, Optional

from ..exceptions import ClientRequestError, LLMError
from .base import BaseDriver, dig


class OllamaDriver(BaseDriver):
    """Driver for a local Ollama server (``/api/chat``, non-streaming)."""

    name = "ollama"
    label = "Ollama"
    requires_api_key = False

    def _build_request(self, prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }
        headers = {"Content-Type": "application/json"}
        return f"{self.config.base_url}/api/chat", headers, payload

    def _extract_text(self, data: Any) -> Optional[str]:
        return dig(data, "message", "content")

    def _classify(self, status: int, body: str) -> LLMError:
        if status == 404:
            return ClientRequestError(
                f"Model '{self.config.model}' not found. Please check if Ollama "
                "is running and the model is installed.",
                status_code=status,
            )
        return super()._classify(status, body)

    def list_models(self) -> list[dict[str, Any]]:
        data = self._get_json(f"{self.config.base_url}/api/tags")
        out: list[dict[str, Any]] = []
        for item in dig(data, "models") or []:
            if isinstance(item, dict) and item.get("name"):
                entry: dict[str, Any] = {"id": str(item["name"]), "owned_by": "ollama"}
                if "size" in item:
                    entry["size"] = item["size"]
                out.append(entry)
        return out
