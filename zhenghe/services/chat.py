# zhenghe/services/chat.py
from __future__ import annotations

import logging
import time
from typing import List, Optional

import httpx

from zhenghe.core.config import Settings, settings as default_settings
from zhenghe.core.exceptions import ApiError, TransportError
from zhenghe.core.logging import clip
from zhenghe.services.conversation import ConversationHistory
from zhenghe.services.transport import DeepSeekTransport
from zhenghe.services.types import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    CompletionRequest,
    CompletionResponse,
    ModelData,
    ModelResponse,
)

log = logging.getLogger("zhenghe.chat")

MODELS_ENDPOINT = "/models"
CHAT_ENDPOINT = "/chat/completions"
# The legacy {prompt, max_tokens} body goes to the chat endpoint as well;
# there is no separate completions route on this API.
COMPLETION_ENDPOINT = CHAT_ENDPOINT


class DeepSeekService:
    """
    High-level access to the DeepSeek API.

    Owns the conversation history: every chat turn appends the user message
    before the request goes out and the assistant reply once a usable one
    comes back. Failed turns are not rolled back.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        default_max_tokens: int = 50,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.client = DeepSeekTransport(api_key, base_url, transport=transport)
        self.history = ConversationHistory()
        self.default_max_tokens = default_max_tokens
        log.info(
            "DeepSeekService init | base_url=%s | default_max_tokens=%d",
            base_url, default_max_tokens,
            extra=self._log_ctx(),
        )

    @classmethod
    def from_settings(
        cls,
        app_settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "DeepSeekService":
        s = app_settings or default_settings
        api_key = s.DEEPSEEK_API_KEY.get_secret_value()
        if not api_key:
            raise ApiError("DEEPSEEK_API_KEY is not configured")
        return cls(api_key, s.DEEPSEEK_BASE_URL, s.DEFAULT_MAX_TOKENS, transport=transport)

    # ---- lifecycle ---------------------------------------------------------
    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "DeepSeekService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---- configuration -----------------------------------------------------
    @property
    def default_max_tokens(self) -> int:
        return self._default_max_tokens

    @default_max_tokens.setter
    def default_max_tokens(self, value: int) -> None:
        if value <= 0:
            raise ValueError(f"default_max_tokens must be positive, got {value}")
        self._default_max_tokens = value

    def get_default_max_tokens(self) -> int:
        return self.default_max_tokens

    def set_default_max_tokens(self, value: int) -> None:
        self.default_max_tokens = value

    # ---- operations --------------------------------------------------------
    def list_models(self) -> List[ModelData]:
        try:
            response = self.client.get(MODELS_ENDPOINT, ModelResponse)
        except TransportError as e:
            log.error("list_models FAILED | err=%s", e, extra=self._log_ctx())
            raise ApiError("Failed to fetch models", e) from e
        log.info("MODELS | count=%d", len(response.data), extra=self._log_ctx())
        return response.data

    def generate_completion(self, prompt: str, max_tokens: Optional[int] = None) -> CompletionResponse:
        """
        Send a legacy {prompt, max_tokens} request.

        The body is posted to /chat/completions, which expects a chat-shaped
        body, so the API is likely to reject it. Kept for callers that still
        depend on the old call; use send_chat_turn() for new code.
        """
        request = CompletionRequest(prompt=prompt, max_tokens=self._max_tokens(max_tokens))
        try:
            return self.client.post(COMPLETION_ENDPOINT, request, CompletionResponse)
        except TransportError as e:
            log.error("generate_completion FAILED | err=%s", e, extra=self._log_ctx())
            raise ApiError("Failed to generate completion", e) from e

    def send_chat_turn(self, message: str, model: str, max_tokens: Optional[int] = None) -> ChatResponse:
        """
        Run one chat turn with the full history as context.

        Returns the whole response; use ChatResponse.get_message() for the
        reply text. Raises ApiError if the request fails, in which case the
        user message stays in the history.
        """
        max_tokens = self._max_tokens(max_tokens)
        t_turn = time.perf_counter()
        log.info("TURN START | model=%s | max_tokens=%d", model, max_tokens, extra=self._log_ctx())
        log.debug("user message | %r", clip(message), extra=self._log_ctx())

        # 1) store user + snapshot for the request
        snapshot = self.history.append_and_snapshot(ChatMessage("user", message))
        log.debug("user stored | history=%d", len(snapshot), extra=self._log_ctx())

        # 2) request over the snapshot, never the live list
        request = ChatRequest(model=model, messages=snapshot, max_tokens=max_tokens)
        log.debug("request built | messages=%d", len(request.messages), extra=self._log_ctx())

        # 3) call
        try:
            response = self.client.post(CHAT_ENDPOINT, request, ChatResponse)
        except TransportError as e:
            log.error("TURN FAILED | model=%s | err=%s", model, e, extra=self._log_ctx())
            raise ApiError("Failed to send chat request", e) from e

        # 4) store assistant
        reply = response.first_message()
        if reply is not None:
            size = self.history.append(reply)
            log.debug(
                "assistant stored | choices=%d | history=%d",
                len(response.choices or []), size, extra=self._log_ctx(),
            )
        else:
            log.warning("TURN without usable choice | id=%s", response.id, extra=self._log_ctx())

        log.info(
            "TURN END | model=%s | total_ms=%.1f",
            model, (time.perf_counter() - t_turn) * 1000.0, extra=self._log_ctx(),
        )
        return response

    def clear_history(self) -> None:
        self.history.clear()

    def get_history(self) -> List[ChatMessage]:
        return self.history.snapshot()

    # ---- internals ---------------------------------------------------------
    def _max_tokens(self, max_tokens: Optional[int]) -> int:
        return self.default_max_tokens if max_tokens is None else max_tokens

    def _log_ctx(self) -> dict:
        return {"conversation_id": self.history.conversation_id}
