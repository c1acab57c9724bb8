# File: wpstudio/infrastructure/lmstudio/sdk.py
# Purpose: LM Studio (OpenAI-compatible) client with retry, streaming observer support and typed DTOs
import json
import re
import time
import uuid
from pathlib import Path
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

import httpx
import structlog

from wpstudio.core.exceptions import (
    ExternalServiceError,
    FeatureUnavailableError,
    StreamingError,
    UnsupportedVersionError,
    ValidationError,
)
from wpstudio.core.streaming import StreamObserver
from wpstudio.infrastructure.http.client import ExternalServiceClient
from wpstudio.infrastructure.http.retry_policy import RetryPolicy
from wpstudio.infrastructure.lmstudio.dto import (
    AudioUploadRequest,
    ChatCompletionRequest,
    ChatCompletionResponse,
    CompletionRequest,
    CompletionResponse,
    EmbeddingRequest,
    EmbeddingResponse,
    HealthStatus,
    ImageGenerationRequest,
    ImageGenerationResponse,
    ListModelsFilter,
    ModelSummary,
    SpeechRequest,
    SpeechResponse,
    TranscriptionRequest,
    TranscriptionResponse,
    TranslationRequest,
    TranslationResponse,
)
from wpstudio.infrastructure.logging.action_logger import ActionLogger

logger = structlog.get_logger(__name__)

MIN_SUPPORTED_VERSION = "0.2.18"


def parse_version(version: str) -> tuple[int, ...]:
    """'0.2.18-beta' -> (0, 2, 18)"""
    return tuple(int(part) for part in re.findall(r"\d+", version)[:3])


class LmStudioSdk(ExternalServiceClient):
    """
    Client for a local LM Studio server.

    Every call is retried ``max_retries`` times on transport failures and
    retryable statuses, then surfaces as an ExternalServiceError. Image and
    audio endpoints are opt-in and raise FeatureUnavailableError when off.
    """

    service_name = "lmstudio"

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:1234",
        *,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        max_retries: int = 2,
        retry_delay: float = 0.1,
        retry_policy: Optional[RetryPolicy] = None,
        verify_tls: bool = True,
        allowed_hosts: Optional[Iterable[str]] = None,
        enable_images: bool = False,
        enable_audio: bool = False,
        default_model: Optional[str] = None,
        default_embedding_model: Optional[str] = None,
        action_logger: Optional[ActionLogger] = None,
        log_channel: str = "external",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize LM Studio client.

        Args:
            base_url: Server root, e.g. http://127.0.0.1:1234
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            connect_timeout: Connection timeout in seconds
            max_retries: Retries after the first attempt
            retry_delay: Seconds between attempts
            retry_policy: Overrides max_retries/retry_delay when given
            verify_tls: Set False to accept self-signed certificates
            allowed_hosts: Hosts the base URL may point at (None or empty = any)
            enable_images: Allow /v1/images endpoints
            enable_audio: Allow /v1/audio endpoints
            default_model: Model used by callers that do not pick one
            default_embedding_model: Embedding model used by callers that do not pick one
            action_logger: Audit logger receiving one "lmstudio.request" entry per call
            log_channel: Log channel for request/response records
            transport: Optional httpx transport (used by tests)
        """
        host = urlparse(base_url).hostname
        hosts = [h for h in (allowed_hosts or []) if h]
        if hosts and host not in hosts:
            raise ValidationError(
                f"LM Studio host '{host}' is not in the allowed hosts list.",
                context={"host": host, "allowed_hosts": hosts},
                service=self.service_name,
            )

        super().__init__(
            base_url,
            api_key=api_key,
            timeout=timeout,
            connect_timeout=connect_timeout,
            retry_policy=retry_policy or RetryPolicy(max_retries=max_retries, initial_delay=retry_delay),
            verify_tls=verify_tls,
            log_channel=log_channel,
            transport=transport,
        )
        self.enable_images = enable_images
        self.enable_audio = enable_audio
        self.default_model = default_model
        self.default_embedding_model = default_embedding_model
        self.action_logger = action_logger or ActionLogger()

    # ------------------------------------------------------------------
    # Catalogue and health
    # ------------------------------------------------------------------

    async def list_models(self, filter: Optional[ListModelsFilter] = None) -> list[ModelSummary]:
        """
        List models known to the server.

        A filter without any set field sends no query string at all. A
        response without ``data`` yields an empty list.
        """
        query = filter.to_map() if filter is not None else {}
        payload = await self._request(
            "GET", "/v1/models", params=query, context={"filter": query or None}
        )
        items = payload.get("data") if isinstance(payload, dict) else None
        if not items:
            return []
        if not isinstance(items, list):
            raise ValidationError(
                "LM Studio /v1/models returned a non-list 'data' field.",
                context={"endpoint": "/v1/models", "actual": type(items).__name__},
                service=self.service_name,
            )
        return [ModelSummary.from_map(item) for item in items]

    async def health_check(self) -> HealthStatus:
        payload = await self._request("GET", "/health")
        return HealthStatus.from_map(payload if isinstance(payload, dict) else {})

    async def ensure_supported_version(self, minimum: str = MIN_SUPPORTED_VERSION) -> HealthStatus:
        """
        Raise UnsupportedVersionError when the server reports an older release.

        Servers that do not report a version are accepted.
        """
        health = await self.health_check()
        if health.lmstudio_version is None:
            logger.warning("lmstudio_version_unknown", minimum=minimum)
            return health
        if parse_version(health.lmstudio_version) < parse_version(minimum):
            raise UnsupportedVersionError(
                f"LM Studio {health.lmstudio_version} is older than the minimum supported {minimum}.",
                context={"version": health.lmstudio_version, "minimum": minimum},
                service=self.service_name,
            )
        return health

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    async def create_chat_completion(
        self,
        request: ChatCompletionRequest,
        observer: Optional[StreamObserver] = None,
    ) -> ChatCompletionResponse:
        """
        Run a chat completion.

        With an observer and ``request.stream`` the server-sent deltas are
        forwarded to ``observer.on_chunk`` as they arrive and assembled into
        the returned response. With an observer but no streaming, the whole
        content is delivered as a single chunk. Either way the observer gets
        exactly one terminal callback.
        """
        if observer is not None and request.stream:
            return await self._stream_chat_completion(request, observer)

        body = request.with_stream(False).to_map() if request.stream else request.to_map()
        try:
            payload = await self._request(
                "POST", "/v1/chat/completions", json_body=body, context={"model": request.model}
            )
            response = ChatCompletionResponse.from_map(payload)
        except ExternalServiceError as e:
            if observer is not None:
                observer.on_error(e)
            raise

        if observer is not None:
            observer.on_chunk(response.content)
            observer.on_completed()
        return response

    async def create_completion(self, request: CompletionRequest) -> CompletionResponse:
        body = {**request.to_map(), "stream": False}
        payload = await self._request(
            "POST", "/v1/completions", json_body=body, context={"model": request.model}
        )
        return CompletionResponse.from_map(payload)

    async def create_embedding(self, request: EmbeddingRequest) -> EmbeddingResponse:
        payload = await self._request(
            "POST", "/v1/embeddings", json_body=request.to_map(), context={"model": request.model}
        )
        return EmbeddingResponse.from_map(payload)

    async def create_image(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        self._require_feature("images", self.enable_images)
        payload = await self._request(
            "POST", "/v1/images/generations", json_body=request.to_map(), context={"model": request.model}
        )
        return ImageGenerationResponse.from_map(payload)

    async def create_transcription(self, request: TranscriptionRequest) -> TranscriptionResponse:
        self._require_feature("audio", self.enable_audio)
        payload = await self._upload_audio("/v1/audio/transcriptions", request)
        return TranscriptionResponse.from_map(payload)

    async def create_translation(self, request: TranslationRequest) -> TranslationResponse:
        self._require_feature("audio", self.enable_audio)
        payload = await self._upload_audio("/v1/audio/translations", request)
        return TranslationResponse.from_map(payload)

    async def create_speech(self, request: SpeechRequest) -> SpeechResponse:
        self._require_feature("audio", self.enable_audio)
        response = await self._request(
            "POST", "/v1/audio/speech", json_body=request.to_map(), context={"model": request.model}, raw=True
        )
        return SpeechResponse(
            audio=response.content,
            mime_type=response.headers.get("content-type", "audio/mpeg"),
            raw_headers=dict(response.headers),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_feature(self, feature: str, enabled: bool) -> None:
        if not enabled:
            raise FeatureUnavailableError(
                f"LM Studio {feature} support is disabled.",
                context={"feature": feature},
                service=self.service_name,
            )

    async def _upload_audio(self, endpoint: str, request: AudioUploadRequest) -> Any:
        path = Path(request.file_path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ValidationError(
                f"Audio file '{request.file_path}' cannot be read: {e}",
                context={"endpoint": endpoint, "file": request.file_path},
                service=self.service_name,
                cause=e,
            ) from e

        return await self._request(
            "POST",
            endpoint,
            data=request.form_fields(),
            files={"file": (path.name, content)},
            context={"model": request.model, "file": path.name},
        )

    async def _stream_chat_completion(
        self,
        request: ChatCompletionRequest,
        observer: StreamObserver,
    ) -> ChatCompletionResponse:
        endpoint = "/v1/chat/completions"
        body = request.to_map()
        headers = await self._authorization_headers()
        context = {"model": request.model}
        self.request_logger.dispatching(
            "POST", endpoint, {"json": body, "headers": headers, "stream": True}
        )
        started_at = time.perf_counter()
        chunks: list[dict[str, Any]] = []

        async def open_stream() -> httpx.Response:
            response = await self.client.send(
                self.client.build_request("POST", endpoint, json=body, headers=headers),
                stream=True,
            )
            if response.is_error:
                await response.aread()
                await response.aclose()
                response.raise_for_status()
            return response

        # Failures before the first chunk are ordinary request failures and get retried
        try:
            response = await self.retry_policy.run(open_stream, description=f"POST {endpoint}")
        except httpx.HTTPError as e:
            error = self._classify("POST", endpoint, e, context)
            self._fail_stream(endpoint, error, observer, started_at, error.source_status())
            raise error from e

        status = response.status_code
        try:
            async for line in response.aiter_lines():
                line = line.strip()
                if not line.startswith("data:"):
                    continue
                data = line[len("data:"):].strip()
                if data == "[DONE]":
                    break
                chunks.append(self._decode_stream_chunk(endpoint, request, data))
                observer.on_chunk(data)
            result = self._assemble_stream(request, chunks)
        except StreamingError as e:
            self._fail_stream(endpoint, e, observer, started_at, status)
            raise
        except httpx.HTTPError as e:
            if chunks:
                error = StreamingError(
                    f"LM Studio stream [POST {endpoint}] failed: {e}",
                    context={"endpoint": endpoint, "model": request.model, "status": status,
                             "received_chunks": len(chunks)},
                    service=self.service_name,
                    cause=e,
                )
            else:
                error = self._classify("POST", endpoint, e, context)
            self._fail_stream(endpoint, error, observer, started_at, status)
            raise error from e
        finally:
            await response.aclose()

        self._record_telemetry("POST", endpoint, started_at, success=True, status=status, payload=body)
        self.request_logger.received("POST", endpoint, status, {"stream": True}, result.to_map())
        observer.on_completed()
        return result

    def _decode_stream_chunk(self, endpoint: str, request: ChatCompletionRequest, data: str) -> dict[str, Any]:
        context = {"endpoint": endpoint, "model": request.model, "chunk": data[:200]}
        try:
            chunk = json.loads(data)
        except json.JSONDecodeError as e:
            raise StreamingError(
                f"LM Studio sent an undecodable stream chunk: {e}",
                context=context,
                service=self.service_name,
                cause=e,
            ) from e
        if not isinstance(chunk, dict):
            raise StreamingError(
                f"LM Studio stream chunk must be an object, {type(chunk).__name__} given.",
                context=context,
                service=self.service_name,
            )
        return chunk

    def _fail_stream(
        self,
        endpoint: str,
        error: ExternalServiceError,
        observer: StreamObserver,
        started_at: float,
        status: Optional[int],
    ) -> None:
        self.request_logger.failed("POST", endpoint, error, status=status)
        self._record_telemetry("POST", endpoint, started_at, success=False, status=status)
        observer.on_error(error)

    def _assemble_stream(
        self,
        request: ChatCompletionRequest,
        chunks: list[dict[str, Any]],
    ) -> ChatCompletionResponse:
        """Fold streamed deltas into a regular chat completion."""
        try:
            return self._fold_chunks(request, chunks)
        except (AttributeError, TypeError, ValidationError) as e:
            raise StreamingError(
                f"LM Studio stream could not be assembled: {e}",
                context={"endpoint": "/v1/chat/completions", "model": request.model,
                         "received_chunks": len(chunks)},
                service=self.service_name,
                cause=e,
            ) from e

    @staticmethod
    def _fold_chunks(
        request: ChatCompletionRequest,
        chunks: list[dict[str, Any]],
    ) -> ChatCompletionResponse:
        contents: dict[int, list[str]] = {}
        roles: dict[int, str] = {}
        finish_reasons: dict[int, str] = {}
        usage = None

        for chunk in chunks:
            for choice in chunk.get("choices") or []:
                index = choice.get("index", 0)
                delta = choice.get("delta") or {}
                parts = contents.setdefault(index, [])
                if delta.get("role"):
                    roles[index] = delta["role"]
                if delta.get("content"):
                    parts.append(delta["content"])
                if choice.get("finish_reason"):
                    finish_reasons[index] = choice["finish_reason"]
            if chunk.get("usage"):
                usage = chunk["usage"]

        first = chunks[0] if chunks else {}
        payload: dict[str, Any] = {
            "id": first.get("id") or f"chatcmpl-{uuid.uuid4().hex}",
            "object": "chat.completion",
            "created": first.get("created") or int(time.time()),
            "model": first.get("model") or request.model,
            "choices": [
                {
                    "index": index,
                    "message": {"role": roles.get(index, "assistant"), "content": "".join(parts)},
                    "finish_reason": finish_reasons.get(index),
                }
                for index, parts in sorted(contents.items())
            ],
            "chunks": chunks,
        }
        if usage is not None:
            payload["usage"] = usage
        return ChatCompletionResponse.from_map(payload)

    def _record_telemetry(
        self,
        method: str,
        endpoint: str,
        started_at: float,
        success: bool,
        status: Optional[int] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> float:
        duration_ms = super()._record_telemetry(
            method, endpoint, started_at, success=success, status=status, payload=payload
        )
        self.action_logger.log(
            "lmstudio.request",
            actor="system",
            metadata={
                "method": method.upper(),
                "endpoint": endpoint,
                "status": status,
                "duration_ms": duration_ms,
                "success": success,
                "payload_keys": sorted(str(key) for key in (payload or {})),
            },
        )
        return duration_ms
