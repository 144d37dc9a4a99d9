"""Async client for the three relay endpoints, used by the session controller."""

from __future__ import annotations

from pathlib import Path

import httpx


class RelayError(Exception):
    """A relay call failed, either on the wire or with an `{error}` reply."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json().get("error") or "Unknown error")
    except ValueError:
        return response.text or "Unknown error"


class CounselClient:
    """Talks to a running counsel server at `base_url`."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._http = http_client

    @classmethod
    def connect(cls, base_url: str, timeout: float = 60.0) -> CounselClient:
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.post(url, **kwargs)
        except httpx.HTTPError as exc:
            raise RelayError(str(exc)) from exc
        if response.is_error:
            raise RelayError(_error_message(response), response.status_code)
        return response

    async def _post_json(self, url: str, key: str, **kwargs) -> str:
        response = await self._post(url, **kwargs)
        try:
            return str(response.json()[key])
        except (ValueError, KeyError, TypeError) as exc:
            raise RelayError(f"Malformed reply from {url}", response.status_code) from exc

    async def chat(self, message: str) -> str:
        return await self._post_json("/api/chat", "message", json={"message": message})

    async def transcribe(self, audio: bytes, filename: str = "audio.webm") -> str:
        return await self._post_json(
            "/api/transcribe", "transcript", files={"file": (filename, audio)}
        )

    async def transcribe_file(self, path: Path) -> str:
        return await self.transcribe(path.read_bytes(), path.name)

    async def synthesize(self, text: str) -> bytes:
        response = await self._post("/api/tts", json={"text": text})
        if not response.headers.get("content-type", "").startswith("audio/"):
            raise RelayError("Malformed reply from /api/tts", response.status_code)
        return response.content
