"""Command-line interface for sagecmt."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .config import (
    COMMIT_FORMATS,
    COMMIT_LANGUAGES,
    DEFAULT_MODELS,
    Config,
    coerce_setting,
    load_config,
    save_config,
)
from .core import SageCMTWorkflow
from .credentials import CredentialStore, SecretStore, validate_api_key
from .exceptions import SageCMTError
from .git import find_git_repo_root
from .host import TerminalHost
from .llm import LLMClient

logger = logging.getLogger(__name__)

COMMANDS = ("generate", "set-key", "delete-key", "list-models", "config")


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )


class CLI:
    """Argument parsing and subcommand dispatch."""

    def __init__(
        self,
        host: Optional[TerminalHost] = None,
        secrets: Optional[SecretStore] = None,
    ) -> None:
        self.host = host
        self.secrets = secrets
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="sagecmt",
            description="Draft a commit message for pending Git changes with an LLM.",
        )
        parser.add_argument("--version", action="version", version=f"sagecmt {__version__}")

        common = argparse.ArgumentParser(add_help=False)
        common.add_argument("--debug", action="store_true", help="Verbose debug logging")
        common.add_argument(
            "--repo-path", dest="repo_path", default=None, help="Repository to operate on"
        )
        common.add_argument("--provider", choices=sorted(DEFAULT_MODELS))
        common.add_argument("--model")
        common.add_argument("--endpoint", help="Override the provider base URL")

        sub = parser.add_subparsers(dest="command")

        gen = sub.add_parser("generate", parents=[common], help="Generate a commit message")
        gen.add_argument("--format", dest="commit_format", choices=COMMIT_FORMATS)
        gen.add_argument(
            "--language",
            dest="commit_language",
            choices=COMMIT_LANGUAGES + ("en", "ru"),
        )
        gen.add_argument(
            "--staged-only",
            dest="only_staged_changes",
            action="store_true",
            default=None,
            help="Only consider staged changes",
        )
        gen.add_argument(
            "--auto-commit", dest="auto_commit", action="store_true", default=None
        )
        gen.add_argument("--auto-push", dest="auto_push", action="store_true", default=None)
        gen.add_argument(
            "--refs",
            dest="prompt_for_refs",
            action="store_true",
            default=None,
            help="Ask for issue references to append to the message",
        )
        gen.add_argument(
            "--instructions",
            dest="custom_instructions",
            help="Custom instructions replacing the format template",
        )
        gen.add_argument("--max-retries", dest="max_retries", type=int)
        gen.add_argument(
            "--repo",
            dest="candidates",
            action="append",
            help="Candidate repository (repeatable); several prompt a selection",
        )

        set_key = sub.add_parser("set-key", parents=[common], help="Store an API key")
        set_key.add_argument("key_provider", nargs="?", choices=sorted(DEFAULT_MODELS))
        set_key.add_argument("--key", help="Key value (prompted when omitted)")

        delete_key = sub.add_parser("delete-key", parents=[common], help="Remove a stored key")
        delete_key.add_argument("key_provider", nargs="?", choices=sorted(DEFAULT_MODELS))

        sub.add_parser("list-models", parents=[common], help="List provider models")

        cfg = sub.add_parser("config", parents=[common], help="Show or change settings")
        cfg.add_argument(
            "--set",
            dest="settings",
            action="append",
            default=[],
            metavar="KEY=VALUE",
            help="Persist a setting in the repository's .sagecmt/config.json",
        )
        return parser

    # ------------------------------------------------------------------
    def run(self, args: Optional[List[str]] = None) -> int:
        argv = list(sys.argv[1:] if args is None else args)
        if not argv or (argv[0] not in COMMANDS and argv[0] not in ("-h", "--help", "--version")):
            argv = ["generate"] + argv
        parsed = self.parser.parse_args(argv)
        _configure_logging(getattr(parsed, "debug", False))

        host = self.host or TerminalHost()
        try:
            config = self._load_config(parsed)
            secrets = self.secrets or CredentialStore()
            handler = {
                "generate": self._cmd_generate,
                "set-key": self._cmd_set_key,
                "delete-key": self._cmd_delete_key,
                "list-models": self._cmd_list_models,
                "config": self._cmd_config,
            }[parsed.command]
            return handler(parsed, config, host, secrets)
        except SageCMTError as exc:
            logger.debug("Command failed", exc_info=True)
            host.error(str(exc))
            return 1
        except KeyboardInterrupt:
            host.error("Interrupted")
            return 130

    def _repo_root(self, parsed: argparse.Namespace) -> Path:
        start = Path(parsed.repo_path) if parsed.repo_path else Path.cwd()
        return find_git_repo_root(start) or start

    def _load_config(self, parsed: argparse.Namespace) -> Config:
        overrides: Dict[str, Any] = {
            "provider": parsed.provider,
            "model": parsed.model,
            "endpoint": parsed.endpoint,
            "repo_path": parsed.repo_path,
        }
        for name in (
            "commit_format",
            "commit_language",
            "only_staged_changes",
            "auto_commit",
            "auto_push",
            "prompt_for_refs",
            "max_retries",
        ):
            overrides[name] = getattr(parsed, name, None)
        instructions = getattr(parsed, "custom_instructions", None)
        if instructions is not None:
            overrides["custom_instructions"] = instructions
            overrides["use_custom_instructions"] = True
        return load_config(repo_root=self._repo_root(parsed), overrides=overrides)

    # ------------------------------------------------------------------
    def _cmd_generate(self, parsed, config: Config, host: TerminalHost, secrets) -> int:
        workflow = SageCMTWorkflow(config, host, secrets, candidates=parsed.candidates)
        result = workflow.run(parsed.repo_path)
        if not result.success:
            if result.message:
                # generation succeeded; a later step failed
                print(result.message)
            host.error(str(result.error))
            return 1
        print(result.message)
        status = f"Commit message set successfully ({result.model})"
        if result.committed:
            status += ", committed"
        if result.pushed:
            status += " and pushed"
        host.success(status)
        return 0

    def _cmd_set_key(self, parsed, config: Config, host: TerminalHost, secrets) -> int:
        provider = parsed.key_provider or config.provider
        key = parsed.key or host.prompt_input(f"Enter your {provider} API key", password=True)
        if key is None:
            host.error("No API key entered")
            return 1
        key = key.strip()
        custom = config.provider == provider and (
            config.llm_endpoint.rstrip("/") != DEFAULT_MODELS[provider]["endpoint"]
        )
        problem = validate_api_key(provider, key, custom_endpoint=custom)
        if problem:
            host.error(problem)
            return 1
        secrets.set(provider, key)
        host.success(f"{provider} API key saved")
        return 0

    def _cmd_delete_key(self, parsed, config: Config, host: TerminalHost, secrets) -> int:
        provider = parsed.key_provider or config.provider
        secrets.delete(provider)
        host.success(f"{provider} API key removed")
        return 0

    def _cmd_list_models(self, parsed, config: Config, host: TerminalHost, secrets) -> int:
        models = LLMClient(config, secrets, host=host).list_models()
        if not models:
            host.error(f"No models returned by {config.provider} at {config.llm_endpoint}")
            return 1
        for entry in models:
            marker = "*" if entry.get("id") == config.model else " "
            print(f"{marker} {entry.get('id')}")
        return 0

    def _cmd_config(self, parsed, config: Config, host: TerminalHost, secrets) -> int:
        if not parsed.settings:
            data = config.to_dict()
            print("Effective configuration")
            print(json.dumps(data, indent=2))
            return 0
        updates: Dict[str, Any] = {}
        for item in parsed.settings:
            if "=" not in item:
                host.error(f"Expected KEY=VALUE, got {item!r}")
                return 2
            key, _, raw = item.partition("=")
            key = key.strip().replace("-", "_")
            updates[key] = coerce_setting(key, raw.strip())
        if "provider" in updates and updates["provider"] != config.provider:
            defaults = DEFAULT_MODELS[updates["provider"]]
            updates.setdefault("model", defaults["model"])
            updates.setdefault("llm_endpoint", defaults["endpoint"])
            updates.setdefault("api_key_env", defaults["api_key_env"])
        new_config = replace(config, **updates)
        path = save_config(new_config, self._repo_root(parsed))
        msg = f"Saved {', '.join(sorted(updates))} to {path}"
        host.success(msg)
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
