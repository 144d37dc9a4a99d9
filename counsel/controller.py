"""Session controller: drives one user's conversation through the relays.

The browser page (`chat_app.ts`) follows the same state machine; this module
is the Python rendition used by the console client.

Phases move ``idle -> awaiting_transcription -> awaiting_chat_reply ->
(awaiting_speech | displaying_text)``. ``displaying_text`` is a resting phase
that accepts the next question. Recording is tracked separately in
``DisplayState.is_recording``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

import logfire

from counsel.client import RelayError
from counsel.persona import (
    EMPTY_QUESTION,
    TEXT_APOLOGY,
    VOICE_APOLOGY,
    WAIT_MESSAGE,
    format_krishna_response,
)

MIN_REQUEST_INTERVAL = 5.0
MAX_RECORDING_SECONDS = 15.0


class Phase(str, Enum):
    IDLE = "idle"
    AWAITING_TRANSCRIPTION = "awaiting_transcription"
    AWAITING_CHAT_REPLY = "awaiting_chat_reply"
    AWAITING_SPEECH = "awaiting_speech"
    DISPLAYING_TEXT = "displaying_text"


@dataclass
class DisplayState:
    """What the page shows. Only the controller mutates it."""

    response: str = ""
    is_loading: bool = False
    is_recording: bool = False
    is_speaking: bool = False
    is_expanded: bool = False
    tts_loading: bool = False
    use_speech: bool = False
    last_request_time: float | None = None


class Relays(Protocol):
    async def chat(self, message: str) -> str: ...

    async def transcribe(self, audio: bytes, filename: str = ...) -> str: ...

    async def synthesize(self, text: str) -> bytes: ...


class Player(Protocol):
    async def play(self, audio: bytes) -> None:
        """Play the audio and return once playback has ended."""


class SessionController:
    def __init__(
        self,
        relays: Relays,
        player: Player,
        clock: Callable[[], float] = time.monotonic,
        min_interval: float = MIN_REQUEST_INTERVAL,
        max_recording_seconds: float = MAX_RECORDING_SECONDS,
    ):
        self._relays = relays
        self._player = player
        self._clock = clock
        self._min_interval = min_interval
        self._max_recording_seconds = max_recording_seconds
        self._recording_started: float | None = None
        self.state = DisplayState()
        self.phase = Phase.IDLE

    @property
    def visible_response(self) -> str:
        return self.state.response if self.state.is_expanded else ""

    def toggle_speech(self) -> bool:
        self.state.use_speech = not self.state.use_speech
        return self.state.use_speech

    def toggle_expanded(self) -> bool:
        self.state.is_expanded = not self.state.is_expanded
        return self.state.is_expanded

    def is_throttled(self) -> bool:
        """True while a request is in flight or the last one was too recent."""
        if self.state.is_loading or self.state.tts_loading:
            return True
        last = self.state.last_request_time
        return last is not None and self._clock() - last < self._min_interval

    async def submit_text(self, message: str) -> str:
        """Ask a typed question; returns the text the user should see."""
        if not message.strip():
            self._show(EMPTY_QUESTION)
            return EMPTY_QUESTION
        if self.is_throttled():
            logfire.info("question throttled")
            return WAIT_MESSAGE
        return await self._converse(message, TEXT_APOLOGY)

    def start_recording(self) -> None:
        if self.state.is_recording:
            return
        self.state.is_recording = True
        self._recording_started = self._clock()

    def should_auto_stop(self) -> bool:
        if not self.state.is_recording or self._recording_started is None:
            return False
        return self._clock() - self._recording_started >= self._max_recording_seconds

    async def stop_recording(self, audio: bytes, filename: str = "audio.webm") -> str:
        """Finish a recording and ask its transcript as the next question."""
        self.state.is_recording = False
        self._recording_started = None
        return await self._ask_by_voice(audio, filename)

    async def transcribe_file(self, path: Path) -> str:
        """Ask a question from a prerecorded audio file."""
        return await self._ask_by_voice(path.read_bytes(), path.name)

    def playback_started(self) -> None:
        self.state.is_speaking = True
        self.state.is_expanded = False

    def playback_ended(self) -> None:
        self.state.is_speaking = False
        self.state.is_expanded = True

    async def _ask_by_voice(self, audio: bytes, filename: str) -> str:
        if self.is_throttled():
            logfire.info("recording throttled")
            return WAIT_MESSAGE

        self.phase = Phase.AWAITING_TRANSCRIPTION
        self.state.is_loading = True
        self.state.last_request_time = self._clock()
        try:
            transcript = await self._relays.transcribe(audio, filename)
        except RelayError as exc:
            logfire.warn("transcription failed: {error}", error=str(exc))
            self._show(VOICE_APOLOGY)
            return VOICE_APOLOGY
        finally:
            self.state.is_loading = False

        return await self._converse(transcript, VOICE_APOLOGY)

    async def _converse(self, message: str, apology: str) -> str:
        self.phase = Phase.AWAITING_CHAT_REPLY
        self.state.is_loading = True
        self.state.last_request_time = self._clock()
        try:
            reply = await self._relays.chat(message)
        except RelayError as exc:
            logfire.warn("chat failed: {error}", error=str(exc))
            self._show(apology)
            return apology
        finally:
            self.state.is_loading = False

        formatted = format_krishna_response(reply)
        if self.state.use_speech:
            self.state.response = formatted
            self.state.is_expanded = False
            await self._speak(formatted)
        else:
            self._show(formatted)
        return formatted

    async def _speak(self, text: str) -> None:
        self.phase = Phase.AWAITING_SPEECH
        self.state.tts_loading = True
        try:
            audio = await self._relays.synthesize(text)
            self.playback_started()
            try:
                await self._player.play(audio)
            finally:
                self.playback_ended()
        except RelayError as exc:
            logfire.warn("speech failed: {error}", error=str(exc))
        finally:
            self.state.tts_loading = False
            self.state.is_expanded = True
            self.phase = Phase.DISPLAYING_TEXT

    def _show(self, text: str) -> None:
        self.state.response = text
        self.state.is_expanded = True
        self.phase = Phase.DISPLAYING_TEXT
