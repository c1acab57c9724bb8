# File: wpstudio/api/v1/lmstudio.py
# Purpose: LM Studio API endpoints: health, model catalogue, chat and SSE chat streaming
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from typing import AsyncIterator, Optional
import asyncio
import json
import structlog

from wpstudio.api.responses import ApiResponse
from wpstudio.api.schemas.lmstudio import ChatCompletionPayload
from wpstudio.config import Settings
from wpstudio.core.exceptions import ExternalServiceError, StreamingError
from wpstudio.core.streaming import QueueStreamObserver
from wpstudio.dependencies import get_lmstudio_sdk, get_lmstudio_stream_sdk, require_lmstudio_enabled
from wpstudio.infrastructure.lmstudio.dto import ListModelsFilter
from wpstudio.infrastructure.lmstudio.inference import ChatInferenceService
from wpstudio.infrastructure.lmstudio.sdk import LmStudioSdk
from wpstudio.middleware.error_handler import handle_external_service_error, map_http_status, user_friendly_message

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/lmstudio", tags=["lmstudio"])


def add_sse_headers(response: StreamingResponse) -> StreamingResponse:
    """Add SSE headers to response"""
    response.headers["Cache-Control"] = "no-cache"
    response.headers["Connection"] = "keep-alive"
    response.headers["X-Accel-Buffering"] = "no"
    return response


def _model_required(request_id: Optional[str]):
    return ApiResponse.error(
        code="lmstudio.model_required",
        message="No model given and no default model configured.",
        meta={"request_id": request_id},
        status=422,
    )


def chunk_text(chunk: str) -> str:
    """
    Text carried by an observer chunk.

    Server-streamed chunks are raw ``chat.completion.chunk`` JSON, buffered
    replays are plain text.
    """
    try:
        payload = json.loads(chunk)
    except ValueError:
        return chunk
    if not isinstance(payload, dict) or not isinstance(payload.get("choices"), list):
        return chunk
    parts = []
    for choice in payload["choices"]:
        delta = choice.get("delta") if isinstance(choice, dict) else None
        content = delta.get("content") if isinstance(delta, dict) else None
        if isinstance(content, str):
            parts.append(content)
    return "".join(parts)


@router.get("/health")
async def health(sdk: LmStudioSdk = Depends(get_lmstudio_sdk)):
    """Report LM Studio health and reject servers older than the supported minimum."""
    try:
        status = await sdk.ensure_supported_version()
    except ExternalServiceError as e:
        return handle_external_service_error(e, "lmstudio.health_failed")

    return ApiResponse.success(
        code="lmstudio.health",
        message="LM Studio is reachable.",
        data=status.to_map(),
    )


@router.get("/models")
async def list_models(
    owned_by: Optional[str] = Query(None, description="Owner filter"),
    status: Optional[str] = Query(None, description="Load state, e.g. loaded"),
    limit: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
    sdk: LmStudioSdk = Depends(get_lmstudio_sdk)
):
    """List models loaded in LM Studio"""
    filter = ListModelsFilter(owned_by=owned_by, status=status, limit=limit, cursor=cursor)
    try:
        models = await sdk.list_models(None if filter.is_empty() else filter)
    except ExternalServiceError as e:
        return handle_external_service_error(
            e, "lmstudio.models_failed", additional_meta={"filters": filter.to_map()}
        )

    return ApiResponse.success(
        code="lmstudio.models",
        message="Models retrieved successfully.",
        data={"items": [model.to_map() for model in models]},
        meta={"filters": filter.to_map()},
    )


@router.post("/chat")
async def chat(
    payload: ChatCompletionPayload,
    request: Request,
    sdk: LmStudioSdk = Depends(get_lmstudio_sdk)
):
    """Buffered chat completion"""
    model = payload.model or sdk.default_model
    if not model:
        return _model_required(getattr(request.state, "request_id", None))

    try:
        response = await sdk.create_chat_completion(payload.to_request(model, stream=False))
    except ExternalServiceError as e:
        return handle_external_service_error(
            e, "lmstudio.chat_failed", additional_meta={"model": model}
        )

    return ApiResponse.success(
        code="lmstudio.chat",
        message="Chat completion generated.",
        data={
            "id": response.id,
            "model": response.model,
            "created": response.created,
            "content": response.content,
            "usage": response.usage.to_map() if response.usage else None,
        },
    )


@router.post("/chat/stream", response_class=StreamingResponse)
async def chat_stream(
    payload: ChatCompletionPayload,
    request: Request,
    settings: Settings = Depends(require_lmstudio_enabled),
    sdk: LmStudioSdk = Depends(get_lmstudio_stream_sdk)
):
    """
    Chat completion delivered as Server-Sent Events.

    Events:
    - ``chunk``: {"content": str}
    - ``done``: {"model": str}
    - ``error``: {"message": str, "status": int, "request_id": str}

    Uses LM Studio's own stream when LM_STUDIO_ENABLE_STREAMING is on,
    otherwise replays a buffered completion in fixed-size chunks.
    """
    request_id = getattr(request.state, "request_id", None)
    model = payload.model or sdk.default_model
    if not model:
        await sdk.close()
        return _model_required(request_id)

    observer = QueueStreamObserver()
    streaming = settings.LM_STUDIO_ENABLE_STREAMING

    async def run() -> None:
        try:
            if streaming:
                await sdk.create_chat_completion(payload.to_request(model, stream=True), observer)
            else:
                await ChatInferenceService(sdk).start(payload.to_request(model, stream=False), observer)
        finally:
            if not observer.finished:
                observer.on_error(StreamingError("Chat stream ended unexpectedly.", service="lmstudio"))

    async def event_generator() -> AsyncIterator[str]:
        task = asyncio.create_task(run())
        try:
            async for event_type, data in observer.events():
                if event_type == QueueStreamObserver.CHUNK:
                    text = chunk_text(data)
                    if text:
                        yield f"event: chunk\ndata: {json.dumps({'content': text})}\n\n"
                elif event_type == QueueStreamObserver.COMPLETED:
                    yield f"event: done\ndata: {json.dumps({'model': model})}\n\n"
                else:
                    status = map_http_status(data, data.source_status())
                    error = {
                        "message": user_friendly_message(data, status),
                        "status": status,
                        "request_id": request_id,
                    }
                    yield f"event: error\ndata: {json.dumps(error)}\n\n"

            try:
                await task
            except ExternalServiceError as e:
                # Already delivered to the client as an error event
                logger.warning("lmstudio_stream_failed", request_id=request_id, **e.to_log_context())
            except Exception as e:
                logger.error(
                    "lmstudio_stream_error",
                    request_id=request_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True
                )
        finally:
            if not task.done():
                task.cancel()
            await sdk.close()

    return add_sse_headers(
        StreamingResponse(
            event_generator(),
            media_type="text/event-stream"
        )
    )
