"""Chat-completion client for the code generation LLM."""

from __future__ import annotations

import logging

import requests

from pulsegen.core.config import LLMConfig
from pulsegen.core.errors import LlmError
from pulsegen.llm.codeblock import fence

logger = logging.getLogger(__name__)


class LLMClient:
    """Sends (system instruction, prompt, source code) to a chat-completion endpoint."""

    def __init__(self, config: LLMConfig, api_key: str | None = None, language_tag: str = ""):
        self.config = config
        self.api_key = api_key
        self.language_tag = language_tag

    def complete(self, system_instruction: str, user_prompt: str, source_code: str = "") -> str:
        """Return the assistant message content, or raise ``LlmError``."""
        if not self.api_key:
            raise LlmError(
                f"No API key configured. Set {self.config.api_key_env} or [llm] api_key in pulsegen.toml."
            )

        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": self._user_message(user_prompt, source_code)},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.debug("POST %s model=%s", self.config.endpoint, self.config.model)
        try:
            r = requests.post(
                self.config.endpoint,
                headers=headers,
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise LlmError(f"LLM request failed: {e}") from e

        if not 200 <= r.status_code < 300:
            raise LlmError(
                f"LLM endpoint returned HTTP {r.status_code}",
                status_code=r.status_code,
                raw=r.text,
            )

        try:
            body = r.json()
        except ValueError as e:
            raise LlmError("LLM response is not JSON", status_code=r.status_code, raw=r.text) from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LlmError(
                "LLM response has no choices[0].message.content",
                status_code=r.status_code,
                raw=r.text,
            ) from e

        if not isinstance(content, str):
            raise LlmError("LLM response content is not text", status_code=r.status_code, raw=r.text)

        logger.debug("LLM returned %d characters", len(content))
        return content

    def _user_message(self, user_prompt: str, source_code: str) -> str:
        if not source_code.strip():
            return user_prompt
        return f"{user_prompt}\n\n{fence(source_code, self.language_tag)}"
