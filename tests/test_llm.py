from types import SimpleNamespace

import httpx
import pytest

from conftest import run
from services.llm import LLMError, OllamaClient, is_retryable, normalize_base_url, strip_reasoning


class ScriptedChat:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(content=outcome)


def client_with(*outcomes):
    client = OllamaClient("http://localhost:11434/v1/", "llama3.1:8b", retry_delay=0, max_retries=3)
    client.llm = ScriptedChat(*outcomes)
    return client


def test_base_url_normalization():
    assert normalize_base_url("http://localhost:11434/v1/") == "http://localhost:11434"
    assert normalize_base_url("http://ollama:11434") == "http://ollama:11434"


def test_strip_reasoning_block():
    assert strip_reasoning('<think>\nweighing options\n</think>\n{"vendor": "openai"}') == '{"vendor": "openai"}'


def test_retryable_errors():
    assert is_retryable(httpx.ConnectError("refused"))
    assert is_retryable(TimeoutError())
    assert is_retryable(RuntimeError("HTTP 429 Too Many Requests"))
    assert not is_retryable(ValueError("model 'x' not found"))


def test_prompt_sends_system_and_user_messages():
    client = client_with("<think>hmm</think> OK")
    assert run(client.prompt("system text", "user text")) == "OK"

    messages = client.llm.calls[0]
    assert [m.content for m in messages] == ["system text", "user text"]


def test_prompt_retries_transient_failures():
    client = client_with(httpx.ConnectError("refused"), "done")
    assert run(client.prompt("s", "u")) == "done"
    assert len(client.llm.calls) == 2


def test_prompt_gives_up_after_max_retries():
    client = client_with(*(httpx.ConnectError("refused") for _ in range(3)))
    with pytest.raises(LLMError):
        run(client.prompt("s", "u"))
    assert len(client.llm.calls) == 3


def test_non_retryable_error_fails_fast():
    client = client_with(ValueError("model not found"), "unused")
    with pytest.raises(LLMError):
        run(client.prompt("s", "u"))
    assert len(client.llm.calls) == 1


def test_connection_probe():
    assert run(client_with("OK").test_connection())
    assert not run(client_with(ValueError("bad model")).test_connection())
