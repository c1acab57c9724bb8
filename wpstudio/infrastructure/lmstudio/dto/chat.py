# File: wpstudio/infrastructure/lmstudio/dto/chat.py
# Purpose: Chat completion request/response value objects (OpenAI-compatible wire format)
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from wpstudio.core.exceptions import ValidationError
from wpstudio.infrastructure.lmstudio.dto.base import (
    SERVICE,
    DataTransferObject,
    check_items,
    check_non_negative,
    check_type,
    compact,
)
from wpstudio.infrastructure.lmstudio.dto.usage import Usage


class ChatRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ChatMessage(DataTransferObject):
    role: ChatRole
    content: str = ""
    name: Optional[str] = None
    tool_calls: Optional[Sequence[dict]] = None

    def __post_init__(self):
        if not isinstance(self.role, ChatRole):
            try:
                object.__setattr__(self, "role", ChatRole(self.role))
            except ValueError as e:
                raise ValidationError(
                    f"role must be one of {[r.value for r in ChatRole]}, {self.role!r} given.",
                    context={"argument": "role", "value": str(self.role)},
                    service=SERVICE,
                    cause=e,
                ) from e
        check_type(self.content, str, "content")
        check_type(self.name, str, "name", optional=True)
        if self.tool_calls is not None:
            object.__setattr__(self, "tool_calls", check_items(self.tool_calls, dict, "tool_calls"))

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ChatMessage":
        content = payload.get("content")
        return cls(
            role=payload["role"],
            content="" if content is None else content,
            name=payload.get("name"),
            tool_calls=payload.get("tool_calls"),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "role": self.role.value,
            "content": self.content,
            "name": self.name,
            "tool_calls": list(self.tool_calls) if self.tool_calls is not None else None,
        })


@dataclass(frozen=True)
class ChatChoice(DataTransferObject):
    index: int
    message: Optional[ChatMessage] = None
    delta: Optional[dict] = None
    finish_reason: Optional[str] = None

    def __post_init__(self):
        check_type(self.index, int, "index")
        check_non_negative(self.index, "index")
        check_type(self.message, ChatMessage, "message", optional=True)
        check_type(self.delta, dict, "delta", optional=True)
        check_type(self.finish_reason, str, "finish_reason", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ChatChoice":
        message = payload.get("message")
        return cls(
            index=payload["index"],
            message=ChatMessage.from_map(message) if message is not None else None,
            delta=payload.get("delta"),
            finish_reason=payload.get("finish_reason"),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "index": self.index,
            "message": self.message.to_map() if self.message else None,
            "delta": self.delta,
            "finish_reason": self.finish_reason,
        })


@dataclass(frozen=True)
class ChatCompletionRequest(DataTransferObject):
    model: str
    messages: Sequence[ChatMessage]
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    seed: Optional[int] = None
    stream: bool = True
    stop: Optional[Sequence[str]] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        check_type(self.model, str, "model")
        object.__setattr__(self, "messages", check_items(self.messages, ChatMessage, "messages"))
        for name in ("temperature", "top_p", "presence_penalty", "frequency_penalty"):
            check_type(getattr(self, name), (int, float), name, optional=True)
        check_non_negative(self.max_tokens, "max_tokens")
        check_type(self.seed, int, "seed", optional=True)
        check_type(self.stream, bool, "stream")
        if self.stop is not None:
            object.__setattr__(self, "stop", check_items(self.stop, str, "stop"))
        check_type(self.metadata, dict, "metadata")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ChatCompletionRequest":
        messages = payload.get("messages") or []
        check_items(messages, dict, "messages")
        return cls(
            model=payload["model"],
            messages=[ChatMessage.from_map(message) for message in messages],
            temperature=payload.get("temperature"),
            top_p=payload.get("top_p"),
            max_tokens=payload.get("max_tokens"),
            presence_penalty=payload.get("presence_penalty"),
            frequency_penalty=payload.get("frequency_penalty"),
            seed=payload.get("seed"),
            stream=bool(payload.get("stream", True)),
            stop=payload.get("stop"),
            metadata=payload.get("metadata") or {},
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "model": self.model,
            "messages": [message.to_map() for message in self.messages],
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
            "presence_penalty": self.presence_penalty,
            "frequency_penalty": self.frequency_penalty,
            "seed": self.seed,
            "stream": self.stream,
            "stop": list(self.stop) if self.stop is not None else None,
            "metadata": self.metadata,
        })

    def with_stream(self, stream: bool) -> "ChatCompletionRequest":
        """Copy of this request with the stream flag replaced."""
        return ChatCompletionRequest.from_map({**self.to_map(), "stream": stream})


@dataclass(frozen=True)
class ChatCompletionResponse(DataTransferObject):
    id: str
    object: str = "chat.completion"
    created: int = 0
    model: str = ""
    choices: Sequence[ChatChoice] = ()
    usage: Optional[Usage] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        check_type(self.id, str, "id")
        check_type(self.object, str, "object")
        check_type(self.created, int, "created")
        check_type(self.model, str, "model")
        object.__setattr__(self, "choices", check_items(self.choices, ChatChoice, "choices"))
        check_type(self.usage, Usage, "usage", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ChatCompletionResponse":
        choices = payload.get("choices") or []
        check_items(choices, dict, "choices")
        usage = payload.get("usage")
        return cls(
            id=payload["id"],
            object=payload.get("object", "chat.completion"),
            created=payload.get("created", int(time.time())),
            model=payload.get("model") or "",
            choices=[ChatChoice.from_map(choice) for choice in choices],
            usage=Usage.from_map(usage) if usage is not None else None,
            raw=dict(payload),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "id": self.id,
            "object": self.object,
            "created": self.created,
            "model": self.model,
            "choices": [choice.to_map() for choice in self.choices],
            "usage": self.usage.to_map() if self.usage else None,
        })

    @property
    def content(self) -> str:
        """Text of the first choice, empty when the model returned nothing."""
        for choice in self.choices:
            if choice.message is not None:
                return choice.message.content
        return ""
