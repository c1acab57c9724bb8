# File: wpstudio/api/schemas/lmstudio.py
# Purpose: Pydantic schemas for the LM Studio API endpoints
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from wpstudio.infrastructure.lmstudio.dto import ChatCompletionRequest, ChatMessage, ChatRole


class ChatMessagePayload(BaseModel):
    """Single message in a chat conversation"""
    role: Literal["system", "user", "assistant", "tool"] = Field(..., description="Author role")
    content: str = Field("", description="Message text")
    name: Optional[str] = None


class ChatCompletionPayload(BaseModel):
    """Request schema for chat completions"""
    model: Optional[str] = Field(None, description="Model identifier; falls back to the configured default")
    messages: List[ChatMessagePayload] = Field(..., min_length=1)
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(None, ge=0.0, le=1.0)
    max_tokens: Optional[int] = Field(None, ge=1)
    stop: Optional[List[str]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "model": "qwen2.5-7b-instruct",
                "messages": [
                    {"role": "system", "content": "You are a helpful assistant."},
                    {"role": "user", "content": "Summarise this post in one sentence."}
                ],
                "temperature": 0.7
            }
        }

    def to_request(self, default_model: str, stream: bool) -> ChatCompletionRequest:
        return ChatCompletionRequest(
            model=self.model or default_model,
            messages=[
                ChatMessage(role=ChatRole(message.role), content=message.content, name=message.name)
                for message in self.messages
            ],
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
            stop=self.stop,
            stream=stream,
        )
