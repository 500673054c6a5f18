"""Completion client over LiteLLM.

The service only ever needs "prompt in, text out", so the client exposes a
single ``complete(prompt, options)`` method. Tests replace it with a fake
that has the same signature.
"""

from __future__ import annotations

import os
import sys
import time
from typing import Any, Optional

import litellm

from errors import CompletionError
from llm_config import DEFAULT_BASE_URL, CompletionOptions
from observability import setup_structured_logger

logger = setup_structured_logger("brosplit.llm")


class LiteLLMCompletionClient:
    """Chat-completion wrapper returning the first choice's text."""

    def __init__(self, api_base: Optional[str] = None, api_key: Optional[str] = None) -> None:
        self.api_base = api_base or DEFAULT_BASE_URL
        self.api_key = api_key if api_key is not None else os.getenv("OPENAI_API_KEY", "")

    def complete(self, prompt: str, options: CompletionOptions) -> str:
        """Run one completion.

        Args:
            prompt: Single user message
            options: Model, sampling and JSON-mode settings

        Returns:
            The message content of the first choice

        Raises:
            CompletionError: Transport/provider failure or an empty response
        """
        kwargs: dict[str, Any] = {
            "model": options.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "api_base": self.api_base,
            "api_key": self.api_key or None,
            "drop_params": True,
        }
        if options.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        print(
            f"   🚀 Calling {options.model} (json_mode={options.json_mode}, max_tokens={options.max_tokens})",
            file=sys.stderr,
        )
        started = time.time()
        try:
            response = litellm.completion(**kwargs)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Completion call failed",
                extra={
                    "extra_fields": {
                        "model": options.model,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    }
                },
            )
            raise CompletionError(f"Completion provider error: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            raise CompletionError("Completion provider returned an empty response")

        duration_ms = round((time.time() - started) * 1000, 2)
        print(f"   ✅ Completion received ({len(content)} chars, {duration_ms} ms)", file=sys.stderr)
        logger.info(
            "Completion received",
            extra={
                "extra_fields": {
                    "model": options.model,
                    "chars": len(content),
                    "duration_ms": duration_ms,
                }
            },
        )
        return content
