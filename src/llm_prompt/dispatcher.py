"""Build the completion request, send it, and pull the generated text out of the reply.

One call, one POST. Nothing here retries or streams.
"""
from __future__ import annotations
import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from llm_prompt.common.schema import CompletionRequest, CompletionResponse
from llm_prompt.common.templates import combine_prompt
from llm_prompt.config import Configuration
from llm_prompt.errors import HttpStatusError, NetworkError, ParseError, UsageError

LOGGER = logging.getLogger("llm_prompt.dispatcher")


def build_request(config: Configuration) -> CompletionRequest:
    gen = config.generation
    return CompletionRequest(
        model=config.model,
        prompt=combine_prompt(config.prompt, config.system_prompt, config.prompt_format),
        max_tokens=gen.max_tokens,
        temperature=gen.temperature,
        top_p=gen.top_p,
        stop=list(gen.stop) if gen.stop is not None else None,
        stream=False,
    )


def extract_text(payload: Any) -> str:
    """
    Return the generated text of the first choice.

    Accepts the completions shape (``choices[0].text``) and the chat shape
    (``choices[0].message.content``).

    Raises:
        ParseError: if the payload has no choices or no text.
    """
    try:
        resp = CompletionResponse.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"unexpected response shape: {e}") from e
    if not resp.choices:
        raise ParseError("response contains no choices")
    choice = resp.choices[0]
    if choice.text is not None:
        return choice.text
    if choice.message is not None and choice.message.content is not None:
        return choice.message.content
    raise ParseError("first choice has no 'text' or 'message.content' field")


def _post(client: httpx.Client, config: Configuration, body: dict[str, Any]) -> httpx.Response:
    try:
        return client.post(config.endpoint, json=body, headers={"Content-Type": "application/json"})
    except httpx.InvalidURL as e:
        raise UsageError(f"malformed endpoint URL {config.endpoint!r}: {e}") from e
    except httpx.TimeoutException as e:
        raise NetworkError(f"request to {config.endpoint} timed out") from e
    except httpx.HTTPError as e:
        raise NetworkError(f"could not reach {config.endpoint}: {e}") from e


def dispatch(config: Configuration, client: httpx.Client | None = None) -> str:
    """
    Send one completion request and return the generated text.

    Args:
        config: Fully resolved configuration.
        client: Optional client to send with; one is created and closed otherwise.
    """
    body = build_request(config).model_dump(exclude_none=True)
    if config.debug:
        LOGGER.debug("POST %s\n%s", config.endpoint, json.dumps(body, indent=2, ensure_ascii=False))

    if client is None:
        with httpx.Client(timeout=config.timeout) as own_client:
            r = _post(own_client, config, body)
    else:
        r = _post(client, config, body)

    if config.debug:
        LOGGER.debug("HTTP %s\n%s", r.status_code, r.text)

    if not r.is_success:
        raise HttpStatusError(r.status_code, r.text.strip())
    try:
        data = r.json()
    except ValueError as e:
        raise ParseError(f"response body is not valid JSON: {e}") from e
    return extract_text(data)
