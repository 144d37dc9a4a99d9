"""Krishna's Divine Counsel, a single-page chat app built with FastAPI.

Run with:
    uv run -m counsel.app
"""

from __future__ import annotations as _annotations

from contextlib import asynccontextmanager
from pathlib import Path

import fastapi
import httpx
import logfire
from dotenv import load_dotenv
from fastapi import Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from counsel.agent import generate_reply
from counsel.audio import NO_FILE_MESSAGE, synthesize_speech, transcribe_upload
from counsel.config import Settings
from counsel.errors import BadRequestError, CounselError, InternalError
from counsel.models import (
    ChatReply,
    ChatRequest,
    ErrorReply,
    SpeechRequest,
    TranscriptReply,
)

load_dotenv()

# Configure logging
logfire.configure(send_to_logfire="if-token-present")
logfire.instrument_pydantic_ai()
logfire.instrument_httpx()

THIS_DIR = Path(__file__).parent


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> fastapi.FastAPI:
    """Build the app; `transport` replaces the network for upstream calls."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(_app: fastapi.FastAPI):
        """Share one pooled HTTP client between relay requests."""
        async with httpx.AsyncClient(
            transport=transport, timeout=settings.request_timeout
        ) as http_client:
            yield {"settings": settings, "http_client": http_client}

    app = fastapi.FastAPI(lifespan=lifespan)
    app.include_router(router)
    app.add_exception_handler(CounselError, counsel_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    logfire.instrument_fastapi(app)
    return app


async def counsel_error_handler(_request: Request, exc: CounselError) -> JSONResponse:
    """Turn a relay failure into an `{error}` reply with its status code."""
    payload: ErrorReply = {"error": exc.message}
    return JSONResponse(payload, status_code=exc.status_code)


async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed JSON bodies as plain 400s."""
    logfire.info("rejected request body", errors=str(exc.errors()))
    payload: ErrorReply = {"error": "Invalid request body"}
    return JSONResponse(payload, status_code=400)


async def get_settings(request: Request) -> Settings:
    """Dependency to get the process settings."""
    return request.state.settings


async def get_http_client(request: Request) -> httpx.AsyncClient:
    """Dependency to get the shared upstream HTTP client."""
    return request.state.http_client


router = fastapi.APIRouter()


@router.get("/")
async def index() -> FileResponse:
    """Serve the main counsel page."""
    return FileResponse((THIS_DIR / "chat_app.html"), media_type="text/html")


@router.get("/chat_app.ts")
async def main_ts() -> FileResponse:
    """Get the raw typescript code, it's compiled in the browser."""
    return FileResponse((THIS_DIR / "chat_app.ts"), media_type="text/plain")


@router.post("/api/chat")
async def post_chat(
    body: ChatRequest,
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> ChatReply:
    """Relay one question to the completion API."""
    try:
        message = await generate_reply(body.message, settings, http_client)
    except CounselError:
        raise
    except Exception as exc:
        logfire.exception("chat relay failed")
        raise InternalError() from exc
    return {"message": message}


@router.post("/api/transcribe")
async def post_transcribe(
    request: Request,
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> TranscriptReply:
    """Relay an uploaded recording (multipart field `file`) to the transcription API."""
    try:
        form = await request.form()
    except (HTTPException, MultiPartException, ValueError) as exc:
        raise BadRequestError(NO_FILE_MESSAGE) from exc

    upload = form.get("file")
    try:
        transcript = await transcribe_upload(
            upload if isinstance(upload, UploadFile) else None, settings, http_client
        )
    except CounselError:
        raise
    except Exception as exc:
        logfire.exception("transcription relay failed")
        raise InternalError() from exc
    finally:
        await form.close()
    return {"transcript": transcript}


@router.post("/api/tts")
async def post_tts(
    body: SpeechRequest,
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """Relay text to the speech API and return the MP3 bytes."""
    try:
        audio = await synthesize_speech(body.text, settings, http_client)
    except CounselError:
        raise
    except Exception as exc:
        logfire.exception("speech relay failed")
        raise InternalError() from exc
    return Response(audio, media_type="audio/mpeg")


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("counsel.app:app", reload=True, reload_dirs=[str(THIS_DIR)])
