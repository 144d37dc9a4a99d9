"""Voice relays: speech-to-text through Groq Whisper, text-to-speech through ElevenLabs."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import httpx
import logfire
from fastapi import UploadFile
from openai import APIStatusError, AsyncOpenAI

from counsel.config import Settings
from counsel.errors import BadRequestError, ConfigurationError, UpstreamError

NO_FILE_MESSAGE = "No file uploaded or parse error"
DEFAULT_AUDIO_NAME = "audio.webm"

VOICE_SETTINGS = {
    "stability": 0.75,
    "similarity_boost": 0.75,
    "style": 0.8,
    "speed": 0.9,
}


def _transcription_error(exc: APIStatusError) -> str:
    body = exc.body
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return "Groq transcription failed"


async def transcribe_upload(
    upload: UploadFile | None, settings: Settings, http_client: httpx.AsyncClient
) -> str:
    """Forward an uploaded recording to the transcription API and return its text.

    The upload is spooled to a temporary file under `settings.upload_dir`; that
    file is removed whether or not the upstream call succeeds.
    """
    if upload is None:
        raise BadRequestError(NO_FILE_MESSAGE)
    if not settings.groq_api_key:
        raise ConfigurationError("Missing GROQ_API_KEY")

    filename = upload.filename or DEFAULT_AUDIO_NAME
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(dir=settings.upload_dir, suffix=Path(filename).suffix)
    audio_path = Path(name)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(await upload.read())

        client = AsyncOpenAI(
            api_key=settings.groq_api_key,
            base_url=f"{settings.groq_base_url}/openai/v1",
            http_client=http_client,
            max_retries=0,
        )
        with audio_path.open("rb") as audio:
            transcription = await client.audio.transcriptions.create(
                model=settings.transcription_model,
                file=(filename, audio),
            )
    except APIStatusError as exc:
        logfire.warn(
            "transcription API returned {status_code}", status_code=exc.status_code
        )
        raise UpstreamError(exc.status_code, _transcription_error(exc)) from exc
    finally:
        audio_path.unlink(missing_ok=True)

    logfire.info("transcript received", chars=len(transcription.text))
    return transcription.text


async def synthesize_speech(
    text: str, settings: Settings, http_client: httpx.AsyncClient
) -> bytes:
    """Turn text into MP3 audio with the fixed Krishna voice."""
    if not settings.elevenlabs_api_key:
        raise ConfigurationError("Missing ELEVENLABS_API_KEY")
    if not text.strip():
        raise BadRequestError("Text must not be empty")

    response = await http_client.post(
        f"{settings.elevenlabs_base_url}/text-to-speech/{settings.voice_id}",
        params={"output_format": settings.tts_output_format},
        headers={"xi-api-key": settings.elevenlabs_api_key},
        json={
            "text": text,
            "model_id": settings.tts_model,
            "voice_settings": VOICE_SETTINGS,
        },
        timeout=settings.request_timeout,
    )
    if response.is_error:
        logfire.warn(
            "speech API returned {status_code}", status_code=response.status_code
        )
        raise UpstreamError(response.status_code, "TTS failed")

    return response.content
