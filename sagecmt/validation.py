"""Cross-setting checks run before each generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

from .config import Config
from .host import Host

logger = logging.getLogger(__name__)

ENABLE_AUTO_COMMIT = "Enable Auto Commit"
DISABLE_AUTO_PUSH = "Disable Auto Push"

AUTO_PUSH_WITHOUT_COMMIT = (
    "Auto push is enabled but auto commit is disabled. "
    "Auto push only runs after an automatic commit."
)
PUSH_DISABLED_FOR_RUN = "Auto push disabled for this run because auto commit is off."
EMPTY_CUSTOM_INSTRUCTIONS = (
    "Custom instructions are enabled but empty; using the "
    "{commit_format} template instead."
)
REFS_WITH_AUTO_COMMIT = (
    "Reference prompt is enabled together with auto commit; references "
    "you enter are included in the automatic commit."
)


@dataclass
class ValidationResult:
    """Effective settings for this run plus any warnings raised."""

    config: Config
    warnings: List[str] = field(default_factory=list)


class SettingsValidator:
    def __init__(self, config: Config, host: Optional[Host] = None) -> None:
        self.config = config
        self.host = host

    def validate(self) -> ValidationResult:
        """Check setting combinations; never modifies the stored config."""
        effective = replace(self.config)
        warnings: List[str] = []

        if effective.auto_push and not effective.auto_commit:
            choice = None
            if self.host is not None:
                choice = self.host.show_warning(
                    AUTO_PUSH_WITHOUT_COMMIT,
                    [ENABLE_AUTO_COMMIT, DISABLE_AUTO_PUSH],
                )
            if choice == ENABLE_AUTO_COMMIT:
                effective.auto_commit = True
                logger.info("Auto commit enabled for this run")
            elif choice == DISABLE_AUTO_PUSH:
                effective.auto_push = False
                logger.info("Auto push disabled for this run")
            else:
                effective.auto_push = False
                warnings.append(PUSH_DISABLED_FOR_RUN)

        if effective.use_custom_instructions and not effective.custom_instructions.strip():
            message = EMPTY_CUSTOM_INSTRUCTIONS.format(
                commit_format=effective.commit_format
            )
            warnings.append(message)
            effective.use_custom_instructions = False
            if self.host is not None:
                self.host.show_warning(message, [])

        if effective.prompt_for_refs and effective.auto_commit:
            warnings.append(REFS_WITH_AUTO_COMMIT)

        for warning in warnings:
            logger.warning(warning)
        return ValidationResult(config=effective, warnings=warnings)
