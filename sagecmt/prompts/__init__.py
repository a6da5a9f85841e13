"""Prompt templates and prompt assembly."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from . import angular, conventional, emoji, karma, semantic

DEFAULT_FORMAT = "conventional"
DEFAULT_LANGUAGE = "english"

TEMPLATES: Dict[str, Dict[str, str]] = {
    "conventional": conventional.TEMPLATES,
    "angular": angular.TEMPLATES,
    "karma": karma.TEMPLATES,
    "semantic": semantic.TEMPLATES,
    "emoji": emoji.TEMPLATES,
}

LANGUAGE_ALIASES = {"en": "english", "ru": "russian"}

CUSTOM_TEMPLATE = """Write a commit message for the changes below following these instructions:

{custom_instructions}"""

RETURN_ONLY_INSTRUCTION = (
    "Please provide ONLY the commit message, without any additional text "
    "or explanations."
)


@dataclass(frozen=True)
class GenerationRequest:
    diff_text: str
    authorship_text: str = ""
    commit_format: str = DEFAULT_FORMAT
    language: str = DEFAULT_LANGUAGE
    custom_instructions: Optional[str] = None


def normalize_language(language: str) -> str:
    key = (language or "").strip().lower()
    return LANGUAGE_ALIASES.get(key, key)


def get_template(commit_format: str, language: str) -> str:
    """Return the template for a format/language pair.

    Unknown pairs fall back to the conventional English template.
    """
    by_language = TEMPLATES.get((commit_format or "").strip().lower(), {})
    template = by_language.get(normalize_language(language))
    if template is None:
        return TEMPLATES[DEFAULT_FORMAT][DEFAULT_LANGUAGE]
    return template


def build_prompt(request: GenerationRequest) -> str:
    """Assemble the full prompt text sent to a provider."""
    custom = (request.custom_instructions or "").strip()
    if custom:
        template = CUSTOM_TEMPLATE.format(custom_instructions=custom)
    else:
        template = get_template(request.commit_format, request.language)

    parts = [
        template.rstrip(),
        "",
        "Git diff to analyze:",
        request.diff_text,
        "",
        "Git blame analysis:",
        request.authorship_text,
        "",
        RETURN_ONLY_INSTRUCTION,
    ]
    return "\n".join(parts)


__all__ = [
    "CUSTOM_TEMPLATE",
    "GenerationRequest",
    "TEMPLATES",
    "build_prompt",
    "get_template",
    "normalize_language",
]
