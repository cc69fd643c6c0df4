# src/thinko_space/llm/client.py

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..errors import GenerationFailedError, LLMBusyError, MissingCredentialsError

logger = logging.getLogger(__name__)

BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException)):
        return True
    return exc.__class__.__name__ in {"Timeout", "ConnectTimeout", "ReadTimeout", "WriteTimeout"}


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible endpoints use 404 for unknown / decommissioned models
    return isinstance(exc, openai.NotFoundError)


def friendly_llm_error_message(err: Exception) -> str:
    if isinstance(err, MissingCredentialsError):
        return "Please set your API key first (/key <your-key> or THINKO_LLM_API_KEY in .env)."
    msg = str(err).strip() or "LLM error."
    if "LLM base URL is not set" in msg:
        return "LLM is not configured (missing base URL). Set THINKO_LLM_BASE_URL in .env (see .env.example)."
    return msg


def _extract_content(response: Any) -> str:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return ""
    return content or ""


class OpenAICompatibleLLMClient:
    """
    Non-streaming chat completion client for any OpenAI-compatible endpoint.

    Behavior:
    - Tries the requested model first, then the configured models in order.
    - 404 (model not available) -> remember it as bad for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    - Only one request may be in flight; a second one fails with LLMBusyError.
    """

    def __init__(self, settings) -> None:
        base_url = (getattr(settings, "llm_base_url", "") or "").strip()
        if not base_url:
            raise GenerationFailedError("LLM base URL is not set. Set THINKO_LLM_BASE_URL in your .env.")

        self._base_url = base_url
        self._models: list[str] = [m for m in (getattr(settings, "llm_models", []) or []) if m and m.strip()]
        connect_s = float(getattr(settings, "llm_connect_timeout", 5.0))
        read_s = float(getattr(settings, "llm_read_timeout", 60.0))
        self._timeout = httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)

        self._clients: dict[str, OpenAI] = {}
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)
        self._in_flight = threading.Lock()

    def _get_client(self, api_key: str) -> OpenAI:
        """
        Lazily create and cache one SDK client per API key.

        Automatic retries are disabled to allow quick fallback across models.
        """
        client = self._clients.get(api_key)
        if client is None:
            client = OpenAI(
                base_url=self._base_url,
                api_key=api_key,
                timeout=self._timeout,
                max_retries=0,
            )
            self._clients[api_key] = client
        return client

    def _candidate_models(self, model: str | None) -> list[str]:
        out: list[str] = []
        for m in [model or "", *self._models]:
            m = m.strip()
            if m and m not in out:
                out.append(m)
        return out

    def generate_text(self, prompt: str, *, api_key: str, model: str | None = None) -> str:
        if not api_key or not api_key.strip():
            raise MissingCredentialsError("LLM API key is missing.")

        models = self._candidate_models(model)
        if not models:
            raise GenerationFailedError("LLM model list is empty. Set THINKO_LLM_MODELS in your .env.")

        if not self._in_flight.acquire(blocking=False):
            raise LLMBusyError("Another request is still running. Please wait for it to finish.")
        try:
            return self._generate(prompt, api_key=api_key.strip(), models=models)
        finally:
            self._in_flight.release()

    def _generate(self, prompt: str, *, api_key: str, models: list[str]) -> str:
        client = self._get_client(api_key)
        last_error: Exception | None = None
        now = time.monotonic()

        for model in models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", model)
            t0 = time.monotonic()
            try:
                response = client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                )
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise GenerationFailedError("LLM authentication failed. Check your API key.") from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            content = _extract_content(response)
            if content.strip():
                logger.info("LLM: completed with model=%s (%.2fs)", model, time.monotonic() - t0)
                return content

            last_error = GenerationFailedError(f"Model returned no content: {model}")
            logger.info("LLM: empty response from model=%s", model)

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise GenerationFailedError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise GenerationFailedError("LLM network/timeout error. Try again later or change models.") from last_error
            if isinstance(last_error, GenerationFailedError):
                raise last_error
            raise GenerationFailedError(f"All LLM models failed: {last_error}") from last_error

        raise GenerationFailedError("All LLM models failed.")
