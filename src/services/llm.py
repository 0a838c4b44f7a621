import re
import time
import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from langchain_ollama import ChatOllama
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
import httpx

logger = logging.getLogger(__name__)

# Reasoning models (deepseek-r1, qwen3) prepend their chain of thought
_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)

_RETRYABLE_MARKERS = ("connection", "connect", "429", "rate limit", "temporarily unavailable")


class LLMClient(Protocol):
    """
    The only shape the enrichment code depends on.
    """

    async def prompt(self, system_prompt: str, user_prompt: str) -> str:
        ...


class LLMError(Exception):
    """The model could not produce a response."""


def strip_reasoning(content: str) -> str:
    return _THINK_BLOCK.sub("", content).strip()


def is_retryable(error: Exception) -> bool:
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TransportError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


def normalize_base_url(base_url: str) -> str:
    """ChatOllama talks to the native API, not the OpenAI-compatible /v1 one."""
    base_url = base_url.rstrip("/")
    if base_url.endswith("/v1"):
        base_url = base_url[:-3]
    return base_url


class OllamaClient:
    """
    Ollama chat client with bounded retries for transient failures.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.1,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 120.0,
        max_tokens: int = 2000,
    ):
        self.base_url = normalize_base_url(base_url)
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        self.llm = ChatOllama(
            base_url=self.base_url,
            model=model,
            temperature=temperature,
            num_predict=max_tokens,
            num_ctx=8192,
        )

    async def _invoke(self, messages: List[BaseMessage]) -> Any:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await asyncio.wait_for(self.llm.ainvoke(messages), timeout=self.timeout)
            except Exception as e:
                if not is_retryable(e):
                    raise LLMError(f"LLM request failed: {e}") from e
                last_error = e
                logger.warning(
                    f"Attempt {attempt}/{self.max_retries} failed: {e or type(e).__name__}",
                    extra={"base_url": self.base_url, "model": self.model},
                )

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        raise LLMError(f"LLM request failed after {self.max_retries} attempts: {last_error}")

    async def prompt(self, system_prompt: str, user_prompt: str) -> str:
        """
        Send a system + user prompt pair and return the text response,
        with any reasoning block removed.
        """
        start = time.time()

        response = await self._invoke([
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ])

        latency_ms = int((time.time() - start) * 1000)
        logger.debug(f"LLM response received (latency: {latency_ms}ms)", extra={"model": self.model})

        return strip_reasoning(str(response.content))

    async def test_connection(self) -> bool:
        try:
            reply = await self.prompt(
                "You are a helpful assistant.",
                'Respond with "OK" if you can understand this message.',
            )
        except LLMError as e:
            logger.error(f"LLM connection test failed: {e}")
            return False
        logger.info(f"LLM connection test succeeded: {reply[:100]}")
        return True

    async def health_check(self) -> Dict[str, Any]:
        """
        Server reachability and whether the configured model is pulled,
        from /api/tags.
        """
        url = f"{self.base_url}/api/tags"
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Ollama health check error: {e} (url={url})")
            return {"reachable": False, "model_available": False}

        if resp.status_code != 200:
            logger.error(f"Ollama health check failed: {resp.status_code} {resp.text}")
            return {"reachable": False, "model_available": False}

        models = [m.get("name", "") for m in resp.json().get("models", [])]
        available = self.model in models or any(m.split(":")[0] == self.model for m in models)
        if not available:
            logger.warning(f"Model {self.model} is not pulled on {self.base_url}")
        return {"reachable": True, "model_available": available}
