# File: wpstudio/infrastructure/lmstudio/dto/embedding.py
# Purpose: Embedding request/response value objects
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from wpstudio.infrastructure.lmstudio.dto.base import (
    DataTransferObject,
    check_items,
    check_type,
    compact,
)
from wpstudio.infrastructure.lmstudio.dto.usage import Usage


@dataclass(frozen=True)
class EmbeddingRequest(DataTransferObject):
    model: str
    input: Union[str, Sequence[str]]
    encoding_format: Optional[str] = None
    user: Optional[str] = None

    def __post_init__(self):
        check_type(self.model, str, "model")
        if not isinstance(self.input, str):
            object.__setattr__(self, "input", check_items(self.input, str, "input"))
        check_type(self.encoding_format, str, "encoding_format", optional=True)
        check_type(self.user, str, "user", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "EmbeddingRequest":
        return cls(
            model=payload["model"],
            input=payload["input"],
            encoding_format=payload.get("encoding_format"),
            user=payload.get("user"),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "model": self.model,
            "input": self.input if isinstance(self.input, str) else list(self.input),
            "encoding_format": self.encoding_format,
            "user": self.user,
        })


@dataclass(frozen=True)
class EmbeddingData(DataTransferObject):
    index: int = 0
    embedding: Sequence[float] = ()
    object: str = "embedding"

    def __post_init__(self):
        check_type(self.index, int, "index")
        object.__setattr__(self, "embedding", check_items(self.embedding, (int, float), "embedding"))
        check_type(self.object, str, "object")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "EmbeddingData":
        return cls(
            index=payload.get("index", 0),
            embedding=payload.get("embedding") or [],
            object=payload.get("object", "embedding"),
        )

    def to_map(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "embedding": list(self.embedding),
            "object": self.object,
        }


@dataclass(frozen=True)
class EmbeddingResponse(DataTransferObject):
    object: str = "list"
    data: Sequence[EmbeddingData] = ()
    model: str = ""
    usage: Optional[Usage] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "data", check_items(self.data, EmbeddingData, "data"))
        check_type(self.model, str, "model")
        check_type(self.usage, Usage, "usage", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "EmbeddingResponse":
        data = payload.get("data") or []
        check_items(data, dict, "data")
        usage = payload.get("usage")
        return cls(
            object=payload.get("object", "list"),
            data=[EmbeddingData.from_map(item) for item in data],
            model=payload.get("model") or "",
            usage=Usage.from_map(usage) if usage is not None else None,
            raw=dict(payload),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "object": self.object,
            "data": [item.to_map() for item in self.data],
            "model": self.model,
            "usage": self.usage.to_map() if self.usage else None,
        })

    @property
    def vectors(self) -> list[list[float]]:
        return [list(item.embedding) for item in sorted(self.data, key=lambda item: item.index)]
