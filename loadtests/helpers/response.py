"""Response error extraction for load test observability.

Relay errors always have the shape ``{"error", "message", "code"}``;
validation failures add ``field``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a compact ``code: message`` string from an API error response."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if not isinstance(body, dict):
        return str(body)[:300]

    if "code" in body:
        detail = f"{body['code']}: {body.get('message', '')}"
        if body.get("field"):
            detail += f" ({body['field']})"
        return detail

    return str(body)[:300]
