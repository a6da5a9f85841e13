"""Provider driver registry."""

from __future__ import annotations

from typing import Dict, Type

from .base import BaseDriver, CommitMessage
from .codestral_driver import CodestralDriver
from .gemini_driver import GeminiDriver
from .ollama_driver import OllamaDriver
from .openai_driver import OpenAIDriver

DRIVERS: Dict[str, Type[BaseDriver]] = {
    "gemini": GeminiDriver,
    "openai": OpenAIDriver,
    "codestral": CodestralDriver,
    "ollama": OllamaDriver,
}

__all__ = [
    "DRIVERS",
    "BaseDriver",
    "CodestralDriver",
    "CommitMessage",
    "GeminiDriver",
    "OllamaDriver",
    "OpenAIDriver",
]
