# File: wpstudio/infrastructure/lmstudio/dto/completion.py
# Purpose: Legacy text completion request/response value objects
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from wpstudio.infrastructure.lmstudio.dto.base import (
    DataTransferObject,
    check_items,
    check_non_negative,
    check_type,
    compact,
)
from wpstudio.infrastructure.lmstudio.dto.usage import Usage


@dataclass(frozen=True)
class CompletionRequest(DataTransferObject):
    model: str
    prompt: Union[str, Sequence[str]] = ""
    suffix: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    stop: Optional[Sequence[str]] = None
    stream: bool = False
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        check_type(self.model, str, "model")
        if not isinstance(self.prompt, str):
            object.__setattr__(self, "prompt", check_items(self.prompt, str, "prompt"))
        check_type(self.suffix, str, "suffix", optional=True)
        check_non_negative(self.max_tokens, "max_tokens")
        for name in ("temperature", "top_p", "presence_penalty", "frequency_penalty"):
            check_type(getattr(self, name), (int, float), name, optional=True)
        if self.stop is not None:
            object.__setattr__(self, "stop", check_items(self.stop, str, "stop"))
        check_type(self.stream, bool, "stream")
        check_type(self.metadata, dict, "metadata")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "CompletionRequest":
        return cls(
            model=payload["model"],
            prompt=payload.get("prompt", ""),
            suffix=payload.get("suffix"),
            max_tokens=payload.get("max_tokens"),
            temperature=payload.get("temperature"),
            top_p=payload.get("top_p"),
            presence_penalty=payload.get("presence_penalty"),
            frequency_penalty=payload.get("frequency_penalty"),
            stop=payload.get("stop"),
            stream=bool(payload.get("stream", False)),
            metadata=payload.get("metadata") or {},
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "model": self.model,
            "prompt": self.prompt if isinstance(self.prompt, str) else list(self.prompt),
            "suffix": self.suffix,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "presence_penalty": self.presence_penalty,
            "frequency_penalty": self.frequency_penalty,
            "stop": list(self.stop) if self.stop is not None else None,
            "stream": self.stream,
            "metadata": self.metadata,
        })


@dataclass(frozen=True)
class CompletionChoice(DataTransferObject):
    index: int = 0
    text: str = ""
    finish_reason: Optional[str] = None
    logprobs: Optional[dict] = None

    def __post_init__(self):
        check_type(self.index, int, "index")
        check_type(self.text, str, "text")
        check_type(self.finish_reason, str, "finish_reason", optional=True)
        check_type(self.logprobs, dict, "logprobs", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "CompletionChoice":
        text = payload.get("text")
        return cls(
            index=payload.get("index", 0),
            text="" if text is None else text,
            finish_reason=payload.get("finish_reason"),
            logprobs=payload.get("logprobs"),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "index": self.index,
            "text": self.text,
            "finish_reason": self.finish_reason,
            "logprobs": self.logprobs,
        })


@dataclass(frozen=True)
class CompletionResponse(DataTransferObject):
    id: str
    object: str = "text_completion"
    created: int = 0
    model: str = ""
    choices: Sequence[CompletionChoice] = ()
    usage: Optional[Usage] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        check_type(self.id, str, "id")
        check_type(self.created, int, "created")
        object.__setattr__(self, "choices", check_items(self.choices, CompletionChoice, "choices"))
        check_type(self.usage, Usage, "usage", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "CompletionResponse":
        choices = payload.get("choices") or []
        check_items(choices, dict, "choices")
        usage = payload.get("usage")
        return cls(
            id=payload["id"],
            object=payload.get("object", "text_completion"),
            created=payload.get("created", int(time.time())),
            model=payload.get("model") or "",
            choices=[CompletionChoice.from_map(choice) for choice in choices],
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
