# File: wpstudio/infrastructure/lmstudio/dto/models.py
# Purpose: Model catalogue, list filter and server health value objects
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from wpstudio.core.exceptions import ValidationError
from wpstudio.infrastructure.lmstudio.dto.base import (
    SERVICE,
    DataTransferObject,
    check_non_negative,
    check_type,
    compact,
)


@dataclass(frozen=True)
class ModelSummary(DataTransferObject):
    id: str
    owned_by: str = "lmstudio"
    created: Optional[int] = None
    status: str = "unknown"
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        check_type(self.id, str, "id")
        check_type(self.owned_by, str, "owned_by")
        check_type(self.created, int, "created", optional=True)
        check_type(self.status, str, "status")
        check_type(self.metadata, dict, "metadata")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ModelSummary":
        return cls(
            id=payload["id"],
            owned_by=payload.get("owned_by") or "lmstudio",
            created=payload.get("created"),
            status=payload.get("status") or "unknown",
            metadata=payload.get("metadata") or {},
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "id": self.id,
            "owned_by": self.owned_by,
            "created": self.created,
            "status": self.status,
            "metadata": self.metadata,
        })


@dataclass(frozen=True)
class ListModelsFilter(DataTransferObject):
    """Optional query for /v1/models. Null and empty-string fields are never sent."""

    owned_by: Optional[str] = None
    status: Optional[str] = None
    limit: Optional[int] = None
    cursor: Optional[str] = None

    def __post_init__(self):
        check_type(self.owned_by, str, "owned_by", optional=True)
        check_type(self.status, str, "status", optional=True)
        check_non_negative(self.limit, "limit")
        if self.limit == 0:
            raise ValidationError(
                "limit must be at least 1.",
                context={"argument": "limit", "value": self.limit},
                service=SERVICE,
            )
        check_type(self.cursor, str, "cursor", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "ListModelsFilter":
        return cls(
            owned_by=payload.get("owned_by"),
            status=payload.get("status"),
            limit=payload.get("limit"),
            cursor=payload.get("cursor"),
        )

    def to_map(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in {
                "owned_by": self.owned_by,
                "status": self.status,
                "limit": self.limit,
                "cursor": self.cursor,
            }.items()
            if value is not None and value != ""
        }

    def is_empty(self) -> bool:
        return not self.to_map()


@dataclass(frozen=True)
class HealthStatus(DataTransferObject):
    status: str = "unknown"
    lmstudio_version: Optional[str] = None
    api_version: Optional[str] = None
    models_loaded: Optional[int] = None
    uptime_ms: Optional[int] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        check_type(self.status, str, "status")
        check_type(self.lmstudio_version, str, "lmstudio_version", optional=True)
        check_type(self.api_version, str, "api_version", optional=True)
        check_non_negative(self.models_loaded, "models_loaded")
        check_non_negative(self.uptime_ms, "uptime_ms")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "HealthStatus":
        return cls(
            status=payload.get("status") or "unknown",
            lmstudio_version=payload.get("lmstudio_version"),
            api_version=payload.get("api_version"),
            models_loaded=payload.get("models_loaded"),
            uptime_ms=payload.get("uptime_ms"),
            raw=dict(payload),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "status": self.status,
            "lmstudio_version": self.lmstudio_version,
            "api_version": self.api_version,
            "models_loaded": self.models_loaded,
            "uptime_ms": self.uptime_ms,
        })

    @property
    def is_healthy(self) -> bool:
        return self.status.lower() in ("ok", "healthy", "ready")
