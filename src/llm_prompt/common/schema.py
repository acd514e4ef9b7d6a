"""Pydantic models for the completion request/response wire format."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CompletionRequest(BaseModel):
    """Body POSTed to an OpenAI-compatible /v1/completions endpoint."""
    model: str
    prompt: str
    max_tokens: int
    temperature: float | None = None
    top_p: float | None = None
    stop: list[str] | None = None
    stream: bool = False


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str | None = None
    content: str | None = None


class CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    text: str | None = None
    message: ChatMessage | None = None
    finish_reason: str | None = None


class Usage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class CompletionResponse(BaseModel):
    """Endpoint response. Only ``choices`` is required; everything else is kept if present."""
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    model: str | None = None
    choices: list[CompletionChoice]
    usage: Usage | None = None
