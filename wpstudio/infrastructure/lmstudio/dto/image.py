# File: wpstudio/infrastructure/lmstudio/dto/image.py
# Purpose: Image generation request/response value objects
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from wpstudio.core.exceptions import ValidationError
from wpstudio.infrastructure.lmstudio.dto.base import (
    SERVICE,
    DataTransferObject,
    check_items,
    check_type,
    compact,
)


@dataclass(frozen=True)
class ImageGenerationRequest(DataTransferObject):
    model: str
    prompt: str
    n: int = 1
    size: str = "1024x1024"
    response_format: str = "b64_json"
    quality: str = "standard"
    user: Optional[str] = None

    def __post_init__(self):
        check_type(self.model, str, "model")
        check_type(self.prompt, str, "prompt")
        check_type(self.n, int, "n")
        if self.n < 1:
            raise ValidationError(
                "Image generation requires at least one output.",
                context={"argument": "n", "value": self.n},
                service=SERVICE,
            )
        check_type(self.user, str, "user", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ImageGenerationRequest":
        return cls(
            model=payload["model"],
            prompt=payload["prompt"],
            n=payload.get("n", 1),
            size=payload.get("size", "1024x1024"),
            response_format=payload.get("response_format", "b64_json"),
            quality=payload.get("quality", "standard"),
            user=payload.get("user"),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "model": self.model,
            "prompt": self.prompt,
            "n": self.n,
            "size": self.size,
            "response_format": self.response_format,
            "quality": self.quality,
            "user": self.user,
        })


@dataclass(frozen=True)
class ImageData(DataTransferObject):
    url: Optional[str] = None
    b64_json: Optional[str] = None
    revised_prompt: Optional[str] = None

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ImageData":
        return cls(
            url=payload.get("url"),
            b64_json=payload.get("b64_json"),
            revised_prompt=payload.get("revised_prompt"),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "url": self.url,
            "b64_json": self.b64_json,
            "revised_prompt": self.revised_prompt,
        })


@dataclass(frozen=True)
class ImageGenerationResponse(DataTransferObject):
    created: int = 0
    data: Sequence[ImageData] = ()
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        check_type(self.created, int, "created")
        object.__setattr__(self, "data", check_items(self.data, ImageData, "data"))

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ImageGenerationResponse":
        data = payload.get("data") or []
        check_items(data, dict, "data")
        return cls(
            created=payload.get("created", int(time.time())),
            data=[ImageData.from_map(item) for item in data],
            raw=dict(payload),
        )

    def to_map(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "data": [item.to_map() for item in self.data],
        }
