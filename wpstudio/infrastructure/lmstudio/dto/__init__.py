# File: wpstudio/infrastructure/lmstudio/dto/__init__.py
# Purpose: Re-export LM Studio request/response value objects
from wpstudio.infrastructure.lmstudio.dto.audio import (
    AudioUploadRequest,
    SpeechRequest,
    SpeechResponse,
    TranscriptionRequest,
    TranscriptionResponse,
    TranslationRequest,
    TranslationResponse,
)
from wpstudio.infrastructure.lmstudio.dto.chat import (
    ChatChoice,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    ChatRole,
)
from wpstudio.infrastructure.lmstudio.dto.completion import (
    CompletionChoice,
    CompletionRequest,
    CompletionResponse,
)
from wpstudio.infrastructure.lmstudio.dto.embedding import (
    EmbeddingData,
    EmbeddingRequest,
    EmbeddingResponse,
)
from wpstudio.infrastructure.lmstudio.dto.image import (
    ImageData,
    ImageGenerationRequest,
    ImageGenerationResponse,
)
from wpstudio.infrastructure.lmstudio.dto.models import HealthStatus, ListModelsFilter, ModelSummary
from wpstudio.infrastructure.lmstudio.dto.usage import Usage

__all__ = [
    "AudioUploadRequest",
    "ChatChoice",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "ChatRole",
    "CompletionChoice",
    "CompletionRequest",
    "CompletionResponse",
    "EmbeddingData",
    "EmbeddingRequest",
    "EmbeddingResponse",
    "HealthStatus",
    "ImageData",
    "ImageGenerationRequest",
    "ImageGenerationResponse",
    "ListModelsFilter",
    "ModelSummary",
    "SpeechRequest",
    "SpeechResponse",
    "TranscriptionRequest",
    "TranscriptionResponse",
    "TranslationRequest",
    "TranslationResponse",
    "Usage",
]
