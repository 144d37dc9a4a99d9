"""Chat relay: asks the completion API to answer as Krishna."""

from __future__ import annotations

import json
from typing import Any

import httpx
import logfire
from groq import AsyncGroq
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.models.groq import GroqModel
from pydantic_ai.providers.groq import GroqProvider
from pydantic_ai.settings import ModelSettings

from counsel.config import Settings
from counsel.errors import BadRequestError, ConfigurationError, UpstreamError
from counsel.persona import NO_RESPONSE, SYSTEM_PROMPT

# The model is chosen per run so the key can come from Settings.
counsel_agent = Agent(
    system_prompt=SYSTEM_PROMPT,
    model_settings=ModelSettings(temperature=0.7, max_tokens=200),
    retries=0,
)


def build_model(settings: Settings, http_client: httpx.AsyncClient) -> GroqModel:
    """Create a Groq chat model bound to the shared HTTP client, without retries."""
    groq_client = AsyncGroq(
        api_key=settings.groq_api_key,
        http_client=http_client,
        base_url=settings.groq_base_url,
        max_retries=0,
    )
    return GroqModel(settings.chat_model, provider=GroqProvider(groq_client=groq_client))


def _body_text(body: Any) -> str:
    if isinstance(body, str):
        return body
    if body is None:
        return "Completion request failed"
    return json.dumps(body)


async def generate_reply(
    message: str, settings: Settings, http_client: httpx.AsyncClient
) -> str:
    """Send one user message to the model and return its text.

    Returns `NO_RESPONSE` when the model answers without any usable text.
    """
    if not settings.groq_api_key:
        raise ConfigurationError("Missing GROQ_API_KEY")
    if not message.strip():
        raise BadRequestError("Message must not be empty")

    try:
        result = await counsel_agent.run(message, model=build_model(settings, http_client))
    except ModelHTTPError as exc:
        logfire.warn(
            "completion API returned {status_code}", status_code=exc.status_code
        )
        raise UpstreamError(exc.status_code, _body_text(exc.body)) from exc
    except UnexpectedModelBehavior as exc:
        logfire.warn("completion API reply had no text: {reason}", reason=str(exc))
        return NO_RESPONSE
    except (IndexError, TypeError, AttributeError) as exc:
        # A completion without choices fails while the model parses it.
        logfire.warn("completion API reply was malformed: {reason}", reason=repr(exc))
        return NO_RESPONSE

    logfire.info("chat reply received", chars=len(result.output))
    return result.output or NO_RESPONSE
