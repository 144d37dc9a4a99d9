"""Data models for the relay endpoints."""

from pydantic import BaseModel
from typing_extensions import TypedDict


class ChatRequest(BaseModel):
    """Body of `POST /api/chat`."""

    message: str


class SpeechRequest(BaseModel):
    """Body of `POST /api/tts`."""

    text: str


class ChatReply(TypedDict):
    """Format of chat replies sent to the browser."""

    message: str


class TranscriptReply(TypedDict):
    """Format of transcripts sent to the browser."""

    transcript: str


class ErrorReply(TypedDict):
    """Body of every failed relay reply."""

    error: str
