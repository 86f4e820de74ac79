"""httpx-based gateway for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

import httpx

from category_attributes.cancellation import CancellationToken
from category_attributes.completion.failure_classifier import (
    TRANSPORT_FAILURE_STATUS,
    classify_upstream_failure,
)
from category_attributes.config import API_KEY_FALLBACK_ENV, OpenAiSettings
from category_attributes.errors import (
    ConfigurationError,
    EmptyResponseError,
    GenerationCancelledError,
    UnauthorizedError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

SNIPPET_MAX_CHARS = 500
_REDACTED = "***"


class OpenAiCompletionGateway:
    """Issues one chat completion request per call; never retries."""

    def __init__(
        self,
        settings: OpenAiSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or OpenAiSettings()
        self._client = httpx.Client(
            timeout=httpx.Timeout(self._settings.request_timeout_seconds, connect=10.0),
            transport=transport or httpx.HTTPTransport(retries=0),
        )

    @property
    def model(self) -> str:
        return self._settings.model

    def check_configuration(self) -> None:
        self._resolve_api_key()

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        cancellation: CancellationToken,
    ) -> str:
        api_key = self._resolve_api_key()
        cancellation.raise_if_cancelled()

        request = self._client.build_request(
            "POST",
            self._settings.api_url,
            json=self._build_payload(system_prompt=system_prompt, user_prompt=user_prompt),
            headers={"Authorization": f"Bearer {api_key}"},
        )
        status_code, body = self._send(request, api_key=api_key, cancellation=cancellation)

        if not 200 <= status_code < 300:
            raise self._upstream_error(
                f"OpenAI request failed with status {status_code}.",
                status_code=status_code,
                snippet=_snippet(body, api_key=api_key),
            )

        return _extract_content(body, status_code=status_code, api_key=api_key)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> OpenAiCompletionGateway:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _resolve_api_key(self) -> str:
        if self._settings.api_key and self._settings.api_key.strip():
            return self._settings.api_key.strip()
        from_env = os.getenv(API_KEY_FALLBACK_ENV, "").strip()
        if from_env:
            return from_env
        raise ConfigurationError(
            "OpenAI API key is not configured. Set CATEGORY_ATTRS_OPENAI_API_KEY "
            f"or the {API_KEY_FALLBACK_ENV} environment variable.",
        )

    def _build_payload(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self._settings.temperature,
            "response_format": {"type": "json_object"},
        }

    def _send(
        self,
        request: httpx.Request,
        *,
        api_key: str,
        cancellation: CancellationToken,
    ) -> tuple[int, str]:
        try:
            response = self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise self._upstream_error(
                "OpenAI request timed out.",
                status_code=TRANSPORT_FAILURE_STATUS,
                snippet=_snippet(f"timeout: {exc}", api_key=api_key),
            ) from exc
        except httpx.HTTPError as exc:
            raise self._upstream_error(
                "OpenAI request failed before a response was received.",
                status_code=TRANSPORT_FAILURE_STATUS,
                snippet=_snippet(str(exc), api_key=api_key),
            ) from exc

        try:
            parts: list[str] = []
            for chunk in response.iter_text():
                if cancellation.is_cancelled:
                    logger.info("Abandoning in-flight completion response after cancellation")
                    raise GenerationCancelledError("Generation was cancelled mid-request.")
                parts.append(chunk)
        except httpx.HTTPError as exc:
            raise self._upstream_error(
                "OpenAI response body could not be read.",
                status_code=response.status_code,
                snippet=_snippet(str(exc), api_key=api_key),
            ) from exc
        finally:
            response.close()
        return response.status_code, "".join(parts)

    def _upstream_error(self, message: str, *, status_code: int, snippet: str) -> UpstreamError:
        classification = classify_upstream_failure(status_code=status_code, snippet=snippet)
        logger.warning(
            "OpenAI returned non-success status %s: %s (%s)",
            status_code,
            snippet,
            classification.to_log_details(model=self._settings.model),
        )
        error_type = UnauthorizedError if status_code in {401, 403} else UpstreamError
        return error_type(
            message,
            status_code=status_code,
            snippet=snippet,
            failure_class=classification.failure_class,
        )


def _extract_content(body: str, *, status_code: int, api_key: str) -> str:
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise UpstreamError(
            "Failed to deserialize OpenAI response.",
            status_code=status_code,
            snippet=_snippet(body, api_key=api_key),
        ) from exc
    if not isinstance(payload, dict):
        raise UpstreamError(
            "OpenAI response must be a JSON object.",
            status_code=status_code,
            snippet=_snippet(body, api_key=api_key),
        )

    content: object = None
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        if isinstance(message, dict):
            content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        raise EmptyResponseError("OpenAI returned an empty response.")
    return content


def _snippet(text: str, *, api_key: str) -> str:
    redacted = text.replace(api_key, _REDACTED) if api_key else text
    return redacted[:SNIPPET_MAX_CHARS]
