# File: wpstudio/infrastructure/lmstudio/inference.py
# Purpose: Buffered chat inference replayed to a stream observer in fixed-size chunks
import uuid
from typing import Any

import structlog

from wpstudio.core.exceptions import ExternalServiceError
from wpstudio.core.streaming import StreamObserver
from wpstudio.infrastructure.lmstudio.dto import ChatCompletionRequest, ChatCompletionResponse
from wpstudio.infrastructure.lmstudio.sdk import LmStudioSdk

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 40


class ChatInferenceService:
    """
    Runs a non-streaming chat completion and replays its text to an observer.

    Used when the server-side stream is disabled but callers still consume
    incremental events.
    """

    def __init__(self, sdk: LmStudioSdk, chunk_size: int = CHUNK_SIZE):
        self.sdk = sdk
        self.chunk_size = chunk_size

    async def start(self, request: ChatCompletionRequest, observer: StreamObserver) -> dict[str, Any]:
        """
        Run the inference and push its content to ``observer``.

        Returns:
            {"job_id", "model", "created"} describing the finished job
        """
        job_id = str(uuid.uuid4())
        logger.info("chat_inference_started", job_id=job_id, model=request.model)

        try:
            response = await self.sdk.create_chat_completion(request.with_stream(False))
        except ExternalServiceError as e:
            logger.warning("chat_inference_failed", job_id=job_id, **e.to_log_context())
            observer.on_error(e)
            raise

        chunks = self.chunk_content(self.extract_content(response))
        for chunk in chunks:
            observer.on_chunk(chunk)
        observer.on_completed()

        logger.info("chat_inference_completed", job_id=job_id, model=response.model, chunks=len(chunks))
        return {
            "job_id": job_id,
            "model": response.model,
            "created": response.created,
        }

    @staticmethod
    def extract_content(response: ChatCompletionResponse) -> str:
        if not response.choices:
            return ""
        message = response.choices[0].message
        return message.content if message is not None else ""

    def chunk_content(self, content: str) -> list[str]:
        return [content[i:i + self.chunk_size] for i in range(0, len(content), self.chunk_size)]
