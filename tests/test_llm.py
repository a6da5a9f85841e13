import json

import httpx
import pytest

from sagecmt.config import Config, load_config
from sagecmt.credentials import MemorySecretStore
from sagecmt.diffparse import TRUNCATION_MARKER
from sagecmt.exceptions import AuthenticationRejectedError, ConfigError, MissingAPIKeyError
from sagecmt.llm import LLMClient, clean_commit_message
from sagecmt.prompts import GenerationRequest


@pytest.mark.parametrize(
    "message",
    [
        "feat(api): add endpoint",
        "fix: handle 'quoted' input",
        "refactor(core): split module\n\n- Move parser\n- Add tests",
        "✨ add real-time collaboration",
        'docs: mention "config" command',
    ],
)
def test_cleanup_is_identity_on_clean_messages(message):
    assert clean_commit_message(message) == message
    assert clean_commit_message(clean_commit_message(message)) == message


@pytest.mark.parametrize(
    "raw,expected",
    [
        ('"feat: quoted"', "feat: quoted"),
        ("'feat: single'", "feat: single"),
        ("```\nfeat: fenced\n```", "feat: fenced"),
        ("```text\nfix: lang fence\n```", "fix: lang fence"),
        ("Here is a commit message:\nfeat: x", "feat: x"),
        ("Here's a commit message: fix: y", "fix: y"),
        ("commit message:\n\nchore: z", "chore: z"),
        ("feat: a\n\n\n\n- b", "feat: a\n\n- b"),
        ("   \n", ""),
    ],
)
def test_cleanup_strips_wrapping(raw, expected):
    assert clean_commit_message(raw) == expected


def _gemini_config(**kw):
    params = dict(
        provider="gemini",
        model="gemini-2.0-flash",
        llm_endpoint="https://generativelanguage.googleapis.com/v1beta/",
        api_key_env="GEMINI_API_KEY",
    )
    params.update(kw)
    return Config(**params)


def _gemini_ok(text):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_generate_truncates_and_builds_prompt():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return _gemini_ok("feat: big change")

    llm = LLMClient(
        _gemini_config(max_diff_length=100),
        MemorySecretStore({"gemini": "key"}),
        http_client=_client(handler),
    )
    request = GenerationRequest(diff_text="+" + "x" * 5000, authorship_text="New file: x")

    msg = llm.generate(request)

    assert msg.text == "feat: big change"
    prompt = seen[0]["contents"][0]["parts"][0]["text"]
    assert TRUNCATION_MARKER in prompt
    assert "x" * 101 not in prompt
    assert "New file: x" in prompt


def test_key_falls_back_to_configured_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    llm = LLMClient(_gemini_config(), MemorySecretStore())

    assert llm.resolve_api_key() == "from-env"


def test_missing_key_prompts_host_and_stores_it(make_host):
    host = make_host(inputs=["prompted_key"])
    secrets = MemorySecretStore()
    seen = []

    def handler(request):
        seen.append(request.headers["x-goog-api-key"])
        return _gemini_ok("feat: ok")

    llm = LLMClient(_gemini_config(), secrets, host=host, http_client=_client(handler))

    llm.generate(GenerationRequest(diff_text="+x"))

    assert seen == ["prompted_key"]
    assert secrets.get("gemini") == "prompted_key"
    assert host.prompts[0][1] is True


def test_missing_key_without_host_raises():
    llm = LLMClient(_gemini_config(), MemorySecretStore(), http_client=_client(lambda r: _gemini_ok("x")))

    with pytest.raises(MissingAPIKeyError):
        llm.generate(GenerationRequest(diff_text="+x"))


def test_rejected_key_is_replaced(make_host):
    host = make_host(inputs=["new_key_123"])
    secrets = MemorySecretStore({"gemini": "stale"})
    responses = [httpx.Response(401), _gemini_ok("fix: after reauth")]
    keys = []

    def handler(request):
        keys.append(request.headers["x-goog-api-key"])
        return responses.pop(0)

    llm = LLMClient(
        _gemini_config(), secrets, host=host, sleep=lambda s: None, http_client=_client(handler)
    )

    assert llm.generate(GenerationRequest(diff_text="+x")).text == "fix: after reauth"
    assert keys == ["stale", "new_key_123"]
    assert secrets.get("gemini") == "new_key_123"


def test_rejected_key_with_invalid_replacement(make_host):
    host = make_host(inputs=["bad key!"])
    secrets = MemorySecretStore({"gemini": "stale"})
    llm = LLMClient(
        _gemini_config(),
        secrets,
        host=host,
        http_client=_client(lambda r: httpx.Response(401)),
    )

    with pytest.raises(AuthenticationRejectedError):
        llm.generate(GenerationRequest(diff_text="+x"))

    assert secrets.get("gemini") is None
    assert host.warnings[0][0] == "API key contains invalid characters"


def test_unsupported_provider():
    cfg = _gemini_config(provider="nope")

    with pytest.raises(ConfigError):
        LLMClient(cfg, MemorySecretStore())


def test_list_models_uses_resolved_key():
    def handler(request):
        assert request.headers["x-goog-api-key"] == "key"
        return httpx.Response(200, json={"models": [{"name": "models/gemini-x"}]})

    llm = LLMClient(
        load_config(overrides={"provider": "gemini"}),
        MemorySecretStore({"gemini": "key"}),
        http_client=_client(handler),
    )

    assert llm.list_models() == [{"id": "gemini-x", "owned_by": "google"}]
