"""Session controller state machine, throttle and speech lifecycle."""

from __future__ import annotations

import httpx
import pytest

from counsel.client import CounselClient, RelayError
from counsel.controller import Phase, SessionController
from counsel.persona import (
    EMPTY_QUESTION,
    TEXT_APOLOGY,
    VOICE_APOLOGY,
    WAIT_MESSAGE,
    format_krishna_response,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class FakeRelays:
    """Records relay calls; any name in `failing` raises RelayError."""

    def __init__(self, reply: str = "Dharma is...", transcript: str = "What is dharma?"):
        self.reply = reply
        self.transcript = transcript
        self.failing: set[str] = set()
        self.calls: list[tuple[str, object]] = []
        self.controller: SessionController | None = None
        self.loading_during_chat: bool | None = None

    async def chat(self, message: str) -> str:
        self.calls.append(("chat", message))
        if self.controller is not None:
            self.loading_during_chat = self.controller.state.is_loading
        if "chat" in self.failing:
            raise RelayError("Missing GROQ_API_KEY", 500)
        return self.reply

    async def transcribe(self, audio: bytes, filename: str = "audio.webm") -> str:
        self.calls.append(("transcribe", audio))
        if "transcribe" in self.failing:
            raise RelayError("No file uploaded or parse error", 400)
        return self.transcript

    async def synthesize(self, text: str) -> bytes:
        self.calls.append(("synthesize", text))
        if "synthesize" in self.failing:
            raise RelayError("TTS failed", 401)
        return b"mp3"


class FakePlayer:
    def __init__(self, controller_ref: list) -> None:
        self._controller_ref = controller_ref
        self.played: list[bytes] = []
        self.state_while_playing: tuple[bool, bool] | None = None

    async def play(self, audio: bytes) -> None:
        controller = self._controller_ref[0]
        self.played.append(audio)
        self.state_while_playing = (
            controller.state.is_speaking,
            controller.state.is_expanded,
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def relays() -> FakeRelays:
    return FakeRelays()


@pytest.fixture
def player() -> FakePlayer:
    return FakePlayer([])


@pytest.fixture
def controller(relays, player, clock) -> SessionController:
    controller = SessionController(relays, player, clock=clock)
    relays.controller = controller
    player._controller_ref.append(controller)
    return controller


@pytest.mark.asyncio
async def test_text_question_is_answered_and_shown(controller, relays) -> None:
    shown = await controller.submit_text("What is dharma?")

    assert shown == format_krishna_response("Dharma is...")
    assert relays.calls == [("chat", "What is dharma?")]
    assert relays.loading_during_chat is True
    assert controller.phase is Phase.DISPLAYING_TEXT
    assert controller.state.is_loading is False
    assert controller.visible_response == shown


@pytest.mark.asyncio
async def test_blank_question_makes_no_call(controller, relays) -> None:
    shown = await controller.submit_text("   ")

    assert shown == EMPTY_QUESTION
    assert controller.visible_response == EMPTY_QUESTION
    assert relays.calls == []


@pytest.mark.asyncio
async def test_second_question_inside_interval_is_throttled(controller, relays, clock) -> None:
    first = await controller.submit_text("What is dharma?")
    clock.now += 4.9

    second = await controller.submit_text("What is karma?")

    assert second == WAIT_MESSAGE
    assert relays.calls == [("chat", "What is dharma?")]
    assert controller.state.response == first


@pytest.mark.asyncio
async def test_question_after_interval_goes_through(controller, relays, clock) -> None:
    await controller.submit_text("What is dharma?")
    clock.now += 5.0

    await controller.submit_text("What is karma?")

    assert [call for call, _ in relays.calls] == ["chat", "chat"]


@pytest.mark.asyncio
async def test_chat_failure_shows_apology(controller, relays) -> None:
    relays.failing.add("chat")

    shown = await controller.submit_text("What is dharma?")

    assert shown == TEXT_APOLOGY
    assert controller.visible_response == TEXT_APOLOGY
    assert controller.state.is_loading is False
    assert controller.phase is Phase.DISPLAYING_TEXT


@pytest.mark.asyncio
async def test_recording_is_transcribed_then_asked(controller, relays) -> None:
    controller.start_recording()
    assert controller.state.is_recording is True

    shown = await controller.stop_recording(b"webm")

    assert controller.state.is_recording is False
    assert relays.calls == [("transcribe", b"webm"), ("chat", "What is dharma?")]
    assert shown == format_krishna_response("Dharma is...")
    assert controller.phase is Phase.DISPLAYING_TEXT


@pytest.mark.asyncio
async def test_transcription_failure_shows_voice_apology(controller, relays) -> None:
    relays.failing.add("transcribe")
    controller.start_recording()

    shown = await controller.stop_recording(b"webm")

    assert shown == VOICE_APOLOGY
    assert [call for call, _ in relays.calls] == ["transcribe"]
    assert controller.state.is_loading is False


@pytest.mark.asyncio
async def test_chat_failure_after_voice_uses_voice_apology(controller, relays) -> None:
    relays.failing.add("chat")
    controller.start_recording()

    shown = await controller.stop_recording(b"webm")

    assert shown == VOICE_APOLOGY


@pytest.mark.asyncio
async def test_recording_is_throttled_too(controller, relays, clock) -> None:
    await controller.submit_text("What is dharma?")
    clock.now += 1
    controller.start_recording()

    shown = await controller.stop_recording(b"webm")

    assert shown == WAIT_MESSAGE
    assert [call for call, _ in relays.calls] == ["chat"]


def test_recording_auto_stops_after_ceiling(controller, clock) -> None:
    assert controller.should_auto_stop() is False
    controller.start_recording()
    clock.now += 14.9
    assert controller.should_auto_stop() is False
    clock.now += 0.1
    assert controller.should_auto_stop() is True


@pytest.mark.asyncio
async def test_prerecorded_file_is_asked(controller, relays, tmp_path) -> None:
    recording = tmp_path / "question.m4a"
    recording.write_bytes(b"m4a")

    await controller.transcribe_file(recording)

    assert relays.calls[0] == ("transcribe", b"m4a")


@pytest.mark.asyncio
async def test_speech_mode_hides_text_while_speaking(controller, relays, player) -> None:
    assert controller.toggle_speech() is True

    shown = await controller.submit_text("What is dharma?")

    assert relays.calls[-1] == ("synthesize", shown)
    assert player.played == [b"mp3"]
    assert player.state_while_playing == (True, False)
    assert controller.state.is_speaking is False
    assert controller.state.is_expanded is True
    assert controller.state.tts_loading is False
    assert controller.phase is Phase.DISPLAYING_TEXT


@pytest.mark.asyncio
async def test_speech_failure_reveals_text(controller, relays, player) -> None:
    controller.toggle_speech()
    relays.failing.add("synthesize")

    shown = await controller.submit_text("What is dharma?")

    assert player.played == []
    assert controller.visible_response == shown
    assert controller.state.tts_loading is False


def test_expand_toggle_hides_and_reveals(controller) -> None:
    controller.state.response = "reply"
    controller.state.is_expanded = True

    assert controller.toggle_expanded() is False
    assert controller.visible_response == ""
    assert controller.toggle_expanded() is True
    assert controller.visible_response == "reply"


def test_playback_events_flip_speaking_flag(controller) -> None:
    controller.playback_started()
    assert (controller.state.is_speaking, controller.state.is_expanded) == (True, False)

    controller.playback_ended()
    assert (controller.state.is_speaking, controller.state.is_expanded) == (False, True)


@pytest.mark.asyncio
async def test_malformed_relay_reply_shows_apology(player, clock) -> None:
    """A garbled 2xx reply from the server still ends in the apology."""
    http_client = httpx.AsyncClient(
        base_url="http://counsel.test",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>proxy</html>")
        ),
    )
    client = CounselClient(http_client)
    controller = SessionController(client, player, clock=clock)
    try:
        shown = await controller.submit_text("What is dharma?")
    finally:
        await client.aclose()

    assert shown == TEXT_APOLOGY
    assert controller.visible_response == TEXT_APOLOGY
    assert controller.state.is_loading is False
