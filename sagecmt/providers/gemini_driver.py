from __future__ import annotations

from typing import Any, Optional

from .base import BaseDriver, dig

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
}


class GeminiDriver(BaseDriver):
    """Driver for Google's Gemini ``generateContent`` endpoint."""

    name = "gemini"
    label = "Gemini"
    supports_reauth = True

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.api_key or "",
        }

    def _build_request(self, prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        url = f"{self.config.base_url}/models/{self.config.model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": dict(GENERATION_CONFIG),
        }
        return url, self._headers(), payload

    def _extract_text(self, data: Any) -> Optional[str]:
        return dig(data, "candidates", 0, "content", "parts", 0, "text")

    def list_models(self) -> list[dict[str, Any]]:
        data = self._get_json(
            f"{self.config.base_url}/models",
            headers={"x-goog-api-key": self.config.api_key or ""},
        )
        out: list[dict[str, Any]] = []
        for item in dig(data, "models") or []:
            if not isinstance(item, dict):
                continue
            methods = item.get("supportedGenerationMethods")
            if methods is not None and "generateContent" not in methods:
                continue
            name = str(item.get("name") or "")
            if not name:
                continue
            entry: dict[str, Any] = {
                "id": name.removeprefix("models/"),
                "owned_by": "google",
            }
            if item.get("displayName"):
                entry["display_name"] = item["displayName"]
            out.append(entry)
        return out
