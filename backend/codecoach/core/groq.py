import asyncio
import logging
from dataclasses import dataclass

import httpx

from codecoach.core.config import Settings
from codecoach.core.errors import UpstreamFailureError, UpstreamTimeoutError


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a concise programming tutor. When asked for JSON, return valid JSON only."


@dataclass(frozen=True)
class ModelConfig:
    api_key: str | None
    model: str = "llama-3.1-8b-instant"
    api_url: str = "https://api.groq.com/openai/v1/chat/completions"
    timeout_ms: int = 30000

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelConfig":
        return cls(
            api_key=settings.GROQ_API_KEY,
            model=settings.GROQ_MODEL,
            api_url=settings.GROQ_API_URL,
            timeout_ms=settings.GROQ_TIMEOUT_MS,
        )


def _extract_text(body: dict) -> str:
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return (content or "").strip()


class ModelClient:
    """
    One bounded chat-completion call per ``complete``.

    The whole request, connect to last byte, runs under a hard wall-clock
    timeout. On expiry the request is cancelled, the connection is released
    and ``UpstreamTimeoutError`` is raised. Nothing is retried.
    """

    def __init__(self, config: ModelConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._transport = transport

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 900,
        temperature: float = 0.2,
        timeout_ms: int | None = None,
    ) -> str:
        if not self.config.api_key:
            raise UpstreamFailureError("GROQ_API_KEY is not configured")
        timeout_ms = timeout_ms if timeout_ms is not None else self.config.timeout_ms
        try:
            return await asyncio.wait_for(
                self._send(prompt, max_tokens, temperature, timeout_ms / 1000),
                timeout=timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(
                "Model request timed out",
                extra={"model": self.config.model, "timeout_ms": timeout_ms},
            )
            raise UpstreamTimeoutError(f"Model request timed out after {timeout_ms}ms") from exc

    async def _send(self, prompt: str, max_tokens: int, temperature: float, timeout: float) -> str:
        payload = {
            "model": self.config.model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                resp = await client.post(self.config.api_url, json=payload, headers=headers)
            except httpx.TimeoutException:
                raise
            except httpx.HTTPError as exc:
                logger.warning("Model transport error: %s", exc)
                raise UpstreamFailureError(f"Model request failed: {exc}", body=str(exc)) from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.warning(
                "Model returned an error status",
                extra={"status_code": resp.status_code, "model": self.config.model},
            )
            raise UpstreamFailureError(
                f"Model API error {resp.status_code}", status=resp.status_code, body=resp.text
            )
        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamFailureError(
                "Model API returned a non-JSON body", status=resp.status_code, body=resp.text[:500]
            ) from exc
        text = _extract_text(body)
        if not text:
            raise UpstreamFailureError("Model API returned an empty completion", status=resp.status_code)
        return text
