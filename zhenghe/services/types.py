# zhenghe/services/types.py
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from zhenghe.core.exceptions import StructuralError

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant"
UNAVAILABLE = "<unavailable>"


class _WireModel(BaseModel):
    # Unknown keys in API payloads are dropped
    model_config = ConfigDict(extra="ignore")


def _null_to_zero(v: Any) -> Any:
    return 0 if v is None else v


class ChatMessage(_WireModel):
    """
    A single message in a conversation.

    role is free text; the API understands 'system', 'user' and 'assistant'.
    content may be null in replies that carry no text.
    """
    role: Optional[str] = None
    content: Optional[str] = None

    def __init__(self, role: Optional[str] = None, content: Optional[str] = None, **data: Any) -> None:
        if role is not None:
            data["role"] = role
        if content is not None:
            data["content"] = content
        super().__init__(**data)


# -------------------------
# Model listing
# -------------------------
class ModelData(_WireModel):
    id: Optional[str] = None
    object: Optional[str] = None
    owned_by: Optional[str] = None


class ModelResponse(_WireModel):
    object: Optional[str] = None
    data: List[ModelData] = Field(default_factory=list)

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, v: Any) -> Any:
        return [] if v is None else v


# -------------------------
# Legacy completion pair
# -------------------------
class CompletionRequest(_WireModel):
    prompt: str
    max_tokens: int


class CompletionResponse(_WireModel):
    id: Optional[str] = None
    text: Optional[str] = None


# -------------------------
# Chat completions
# -------------------------
class ResponseFormat(_WireModel):
    type: str = "text"


class ChatRequest(_WireModel):
    """
    Body of POST /chat/completions. Every field is serialized, defaults
    and nulls included. stop, stream_options, tools and top_logprobs are
    passed through as-is.

    A system message is prepended when the conversation does not start
    with one.
    """
    messages: List[ChatMessage] = Field(default_factory=list, validate_default=True)
    model: str
    frequency_penalty: float = 0.0
    max_tokens: int = 2048
    presence_penalty: float = 0.0
    response_format: ResponseFormat = Field(default_factory=ResponseFormat)
    stop: Optional[Any] = None
    stream: bool = False
    stream_options: Optional[Any] = None
    temperature: float = 1.0
    top_p: float = 1.0
    tools: Optional[Any] = None
    tool_choice: str = "none"
    logprobs: bool = False
    top_logprobs: Optional[Any] = None

    @field_validator("messages", mode="after")
    @classmethod
    def _ensure_system_prompt(cls, messages: List[ChatMessage]) -> List[ChatMessage]:
        if not messages or messages[0].role != "system":
            return [ChatMessage("system", DEFAULT_SYSTEM_PROMPT), *messages]
        return messages


class Choice(_WireModel):
    finish_reason: Optional[str] = None
    index: int = 0
    message: Optional[ChatMessage] = None

    @field_validator("index", mode="before")
    @classmethod
    def _null_index(cls, v: Any) -> Any:
        return _null_to_zero(v)


class TokenUsage(_WireModel):
    completion_tokens: int = 0
    prompt_tokens: int = 0
    total_tokens: int = 0

    @field_validator("completion_tokens", "prompt_tokens", "total_tokens", mode="before")
    @classmethod
    def _null_counts(cls, v: Any) -> Any:
        return _null_to_zero(v)


class ChatResponse(_WireModel):
    id: Optional[str] = None
    object: Optional[str] = None
    created: int = 0
    model: Optional[str] = None
    choices: Optional[List[Optional[Choice]]] = None
    usage: Optional[TokenUsage] = None

    @field_validator("created", mode="before")
    @classmethod
    def _null_created(cls, v: Any) -> Any:
        return _null_to_zero(v)

    def first_message(self) -> Optional[ChatMessage]:
        """The first choice's message, or None if the response has none."""
        if not self.choices or self.choices[0] is None:
            return None
        return self.choices[0].message

    def get_message(self) -> str:
        """
        Return the text of the first choice.

        Raises StructuralError instead of returning an empty reply when the
        response has no choices, a null first choice, a null message or
        empty content.
        """
        if not self.choices:
            raise StructuralError("No choices available in API response")
        choice = self.choices[0]
        if choice is None:
            raise StructuralError("First choice is null in API response")
        if choice.message is None:
            raise StructuralError("Message object is null in API response choice")
        content = choice.message.content
        if not content:
            raise StructuralError("Message content is empty in API response")
        return content

    def __str__(self) -> str:
        try:
            message = self.get_message()
        except StructuralError:
            message = UNAVAILABLE
        return f"ChatResponse(id={self.id!r}, object={self.object!r}, message={message!r})"
