# File: wpstudio/infrastructure/lmstudio/dto/usage.py
# Purpose: Token accounting block shared by chat, completion and embedding responses
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from wpstudio.infrastructure.lmstudio.dto.base import DataTransferObject, check_non_negative, compact


@dataclass(frozen=True)
class Usage(DataTransferObject):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    def __post_init__(self):
        check_non_negative(self.prompt_tokens, "prompt_tokens")
        check_non_negative(self.completion_tokens, "completion_tokens")
        check_non_negative(self.total_tokens, "total_tokens")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "Usage":
        return cls(
            prompt_tokens=payload.get("prompt_tokens"),
            completion_tokens=payload.get("completion_tokens"),
            total_tokens=payload.get("total_tokens"),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        })
