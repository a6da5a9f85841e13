"""sagecmt - AI-drafted commit messages from pending Git changes."""

from importlib import import_module
from typing import TYPE_CHECKING

__version__ = "0.1.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "Config", "ProviderConfig", "load_config",
    # Git
    "GitRepo", "ChangeSet", "ChangeSetResolver", "ScopePolicy",
    "AuthorshipAnalyzer",
    # Generation
    "GenerationRequest", "build_prompt", "LLMClient", "CommitMessage",
    # Core workflow
    "SageCMTWorkflow", "WorkflowResult", "WorkflowState",
    # Exceptions
    "SageCMTError", "GitError", "LLMError", "ConfigError",
]


def __getattr__(name: str):
    """Lazy attribute loader to avoid importing heavy modules at package import time.

    Keeps ``import sagecmt`` cheap; httpx and the openai SDK are only
    imported once a driver or the workflow is actually accessed.
    """
    mapping = {
        # Config
        "Config": ("sagecmt.config", "Config"),
        "ProviderConfig": ("sagecmt.config", "ProviderConfig"),
        "load_config": ("sagecmt.config", "load_config"),
        # Git
        "GitRepo": ("sagecmt.git", "GitRepo"),
        "ChangeSet": ("sagecmt.changeset", "ChangeSet"),
        "ChangeSetResolver": ("sagecmt.changeset", "ChangeSetResolver"),
        "ScopePolicy": ("sagecmt.changeset", "ScopePolicy"),
        "AuthorshipAnalyzer": ("sagecmt.blame", "AuthorshipAnalyzer"),
        # Generation
        "GenerationRequest": ("sagecmt.prompts", "GenerationRequest"),
        "build_prompt": ("sagecmt.prompts", "build_prompt"),
        "LLMClient": ("sagecmt.llm", "LLMClient"),
        "CommitMessage": ("sagecmt.providers.base", "CommitMessage"),
        # Core workflow
        "SageCMTWorkflow": ("sagecmt.core", "SageCMTWorkflow"),
        "WorkflowResult": ("sagecmt.core", "WorkflowResult"),
        "WorkflowState": ("sagecmt.core", "WorkflowState"),
        # Exceptions
        "SageCMTError": ("sagecmt.exceptions", "SageCMTError"),
        "GitError": ("sagecmt.exceptions", "GitError"),
        "LLMError": ("sagecmt.exceptions", "LLMError"),
        "ConfigError": ("sagecmt.exceptions", "ConfigError"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        mod = import_module(mod_name)
        value = getattr(mod, attr)
        globals()[name] = value  # cache for future access
        return value
    raise AttributeError(f"module 'sagecmt' has no attribute {name!r}")


if TYPE_CHECKING:
    # For type checkers and IDEs, provide direct imports
    from .blame import AuthorshipAnalyzer
    from .changeset import ChangeSet, ChangeSetResolver, ScopePolicy
    from .config import Config, ProviderConfig, load_config
    from .core import SageCMTWorkflow, WorkflowResult, WorkflowState
    from .exceptions import ConfigError, GitError, LLMError, SageCMTError
    from .git import GitRepo
    from .llm import LLMClient
    from .prompts import GenerationRequest, build_prompt
    from .providers.base import CommitMessage
