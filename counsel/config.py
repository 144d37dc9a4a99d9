"""Runtime settings for the relay server."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

GROQ_BASE_URL = "https://api.groq.com"
ELEVENLABS_BASE_URL = "https://api.elevenlabs.io/v1"


@dataclass(frozen=True)
class Settings:
    """Credentials and fixed upstream parameters, built once at process start.

    A missing API key is not fatal here; each relay checks for its own key
    when a request arrives.
    """

    groq_api_key: str | None = None
    elevenlabs_api_key: str | None = None
    chat_model: str = "llama-3.3-70b-versatile"
    transcription_model: str = "whisper-large-v3"
    voice_id: str = "2iAXJEMO2o0PqUHzvZwQ"
    tts_model: str = "eleven_multilingual_v2"
    tts_output_format: str = "mp3_44100_128"
    groq_base_url: str = GROQ_BASE_URL
    elevenlabs_base_url: str = ELEVENLABS_BASE_URL
    upload_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> Settings:
        """Read settings from the process environment (and `.env` if present)."""
        load_dotenv()
        defaults = cls()
        return cls(
            groq_api_key=os.getenv("GROQ_API_KEY") or None,
            elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY") or None,
            chat_model=os.getenv("COUNSEL_CHAT_MODEL", defaults.chat_model),
            transcription_model=os.getenv(
                "COUNSEL_TRANSCRIPTION_MODEL", defaults.transcription_model
            ),
            voice_id=os.getenv("COUNSEL_VOICE_ID", defaults.voice_id),
            upload_dir=Path(os.getenv("COUNSEL_UPLOAD_DIR", str(defaults.upload_dir))),
            request_timeout=float(
                os.getenv("COUNSEL_REQUEST_TIMEOUT", defaults.request_timeout)
            ),
        )
