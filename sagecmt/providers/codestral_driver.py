from __future__ import annotations

from typing import Any, Optional

from .base import BaseDriver, dig


class CodestralDriver(BaseDriver):
    """Driver for Mistral's Codestral chat completions endpoint."""

    name = "codestral"
    label = "Codestral"
    supports_reauth = True

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key or ''}",
        }

    def _build_request(self, prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.7,
            "max_tokens": 1024,
        }
        return f"{self.config.base_url}/chat/completions", self._headers(), payload

    def _extract_text(self, data: Any) -> Optional[str]:
        return dig(data, "choices", 0, "message", "content")

    def list_models(self) -> list[dict[str, Any]]:
        data = self._get_json(f"{self.config.base_url}/models", headers=self._headers())
        out: list[dict[str, Any]] = []
        for item in dig(data, "data") or []:
            if isinstance(item, dict) and item.get("id"):
                out.append({"id": str(item["id"]), "owned_by": "mistral"})
        return out
