# File: wpstudio/infrastructure/lmstudio/dto/audio.py
# Purpose: Speech synthesis, transcription and translation value objects
import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from wpstudio.infrastructure.lmstudio.dto.base import (
    DataTransferObject,
    check_items,
    check_type,
    compact,
)


@dataclass(frozen=True)
class SpeechRequest(DataTransferObject):
    model: str
    voice: str
    input: str
    format: str = "mp3"
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        for name in ("model", "voice", "input", "format"):
            check_type(getattr(self, name), str, name)
        check_type(self.metadata, dict, "metadata")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "SpeechRequest":
        return cls(
            model=payload["model"],
            voice=payload["voice"],
            input=payload["input"],
            format=payload.get("format", "mp3"),
            metadata=payload.get("metadata") or {},
        )

    def to_map(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "voice": self.voice,
            "input": self.input,
            "format": self.format,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class SpeechResponse(DataTransferObject):
    """Synthesised audio. The map form carries the bytes base64 encoded."""

    audio: bytes
    mime_type: str = "audio/mpeg"
    raw_headers: dict = field(default_factory=dict)

    def __post_init__(self):
        check_type(self.audio, bytes, "audio")
        check_type(self.mime_type, str, "mime_type")
        check_type(self.raw_headers, dict, "raw_headers")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "SpeechResponse":
        try:
            audio = base64.b64decode(payload["audio"], validate=True)
        except binascii.Error as e:
            raise ValueError(f"audio is not valid base64: {e}") from e
        return cls(
            audio=audio,
            mime_type=payload.get("mime_type", "audio/mpeg"),
            raw_headers=payload.get("raw_headers") or {},
        )

    def to_map(self) -> dict[str, Any]:
        return {
            "audio": base64.b64encode(self.audio).decode("ascii"),
            "mime_type": self.mime_type,
            "raw_headers": self.raw_headers,
        }

    @property
    def binary_length(self) -> int:
        return len(self.audio)


@dataclass(frozen=True)
class AudioUploadRequest(DataTransferObject):
    """Fields shared by every request that uploads an audio file."""

    model: str
    file_path: str
    prompt: Optional[str] = None
    response_format: str = "json"
    temperature: Optional[float] = None

    def __post_init__(self):
        check_type(self.model, str, "model")
        check_type(self.file_path, str, "file_path")
        check_type(self.prompt, str, "prompt", optional=True)
        check_type(self.response_format, str, "response_format")
        check_type(self.temperature, (int, float), "temperature", optional=True)

    @classmethod
    def _upload_fields(cls, payload: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "model": payload["model"],
            "file_path": payload["file"],
            "prompt": payload.get("prompt"),
            "response_format": payload.get("response_format", "json"),
            "temperature": payload.get("temperature"),
        }

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "AudioUploadRequest":
        return cls(**cls._upload_fields(payload))

    def to_map(self) -> dict[str, Any]:
        return compact({
            "model": self.model,
            "file": self.file_path,
            "prompt": self.prompt,
            "response_format": self.response_format,
            "temperature": self.temperature,
        })

    def form_fields(self) -> dict[str, str]:
        """Multipart fields sent alongside the uploaded file."""
        fields = self.to_map()
        fields.pop("file")
        return {key: str(value) for key, value in fields.items()}


@dataclass(frozen=True)
class TranscriptionRequest(AudioUploadRequest):
    language: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        check_type(self.language, str, "language", optional=True)

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "TranscriptionRequest":
        return cls(**cls._upload_fields(payload), language=payload.get("language"))

    def to_map(self) -> dict[str, Any]:
        return compact({**super().to_map(), "language": self.language})


@dataclass(frozen=True)
class TranscriptionResponse(DataTransferObject):
    text: str = ""
    language: Optional[str] = None
    duration: Optional[float] = None
    segments: Sequence[dict] = ()
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        check_type(self.text, str, "text")
        check_type(self.language, str, "language", optional=True)
        check_type(self.duration, (int, float), "duration", optional=True)
        object.__setattr__(self, "segments", check_items(self.segments, dict, "segments"))

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "TranscriptionResponse":
        duration = payload.get("duration")
        return cls(
            text=str(payload.get("text") or ""),
            language=payload.get("language"),
            duration=float(duration) if duration is not None else None,
            segments=payload.get("segments") or [],
            raw=dict(payload),
        )

    def to_map(self) -> dict[str, Any]:
        return compact({
            "text": self.text,
            "language": self.language,
            "duration": self.duration,
            "segments": list(self.segments),
        })


@dataclass(frozen=True)
class TranslationRequest(AudioUploadRequest):
    """Same upload as a transcription without a language; the server answers in English."""

@dataclass(frozen=True)
class TranslationResponse(DataTransferObject):
    text: str = ""
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        check_type(self.text, str, "text")

    @classmethod
    def _from_map(cls, payload: Mapping[str, Any]) -> "TranslationResponse":
        return cls(text=str(payload.get("text") or ""), raw=dict(payload))

    def to_map(self) -> dict[str, Any]:
        return {"text": self.text}
