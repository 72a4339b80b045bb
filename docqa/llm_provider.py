from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable
from urllib import error, request

DEFAULT_TIMEOUT_SECONDS = 20.0

PostJson = Callable[[str, dict[str, Any], dict[str, str], float], dict[str, Any]]


@dataclass(frozen=True)
class LlmResult:
    status: str
    raw_response: str | None
    warnings: list[str]


def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str], timeout: float = DEFAULT_TIMEOUT_SECONDS) -> dict[str, Any]:
    body = json.dumps(payload).encode("utf-8")
    req = request.Request(url, data=body, headers=headers, method="POST")
    with request.urlopen(req, timeout=timeout) as response:
        response_body = response.read().decode("utf-8")
    return json.loads(response_body)


def _gemini_error_message(body: str) -> str | None:
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return body[:200] or None
    message = (parsed.get("error") or {}).get("message") if isinstance(parsed, dict) else None
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


def _http_error_warning(exc: error.HTTPError) -> str:
    try:
        body = exc.read().decode("utf-8", errors="replace").strip()
    except OSError:
        body = ""
    detail = _gemini_error_message(body) if body else None
    suffix = f": {detail}" if detail else "."
    return f"Gemini request failed with HTTP {exc.code}{suffix}"


def _first_gemini_text(response_payload: dict[str, Any]) -> str | None:
    candidates = response_payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return None

    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts or not isinstance(parts[0], dict):
        return None

    text = parts[0].get("text")
    if isinstance(text, str) and text:
        return text
    return None


def gemini_endpoint(base_url: str, model: str, api_key: str) -> str:
    return f"{base_url.rstrip('/')}/{model}:generateContent?key={api_key}"


def generate_multimodal_with_gemini(
    *,
    endpoint: str,
    payload: dict[str, Any],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    post: PostJson | None = None,
) -> LlmResult:
    """Send a prepared generateContent payload.

    Returns status "success" with the first candidate's first text part,
    "empty" when the service answered without text, or "error" on transport
    and HTTP failures.
    """

    post_json = post or _post_json
    try:
        response_payload = post_json(endpoint, payload, {"Content-Type": "application/json"}, timeout)
    except error.HTTPError as exc:
        return LlmResult(status="error", raw_response=None, warnings=[_http_error_warning(exc)])
    except error.URLError as exc:
        return LlmResult(
            status="error",
            raw_response=None,
            warnings=[f"Gemini request failed before receiving a response: {exc.reason}"],
        )
    except Exception as exc:  # noqa: BLE001
        return LlmResult(
            status="error",
            raw_response=None,
            warnings=[f"Gemini request failed before receiving a response: {exc}"],
        )

    extracted_text = _first_gemini_text(response_payload)
    if extracted_text:
        return LlmResult(status="success", raw_response=extracted_text, warnings=[])

    return LlmResult(
        status="empty",
        raw_response=json.dumps(response_payload),
        warnings=["Gemini response did not contain text content."],
    )
