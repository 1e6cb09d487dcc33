"""Bridge-level shared-secret check for the HTTP bindings."""

from __future__ import annotations

import hmac
from collections.abc import Mapping

SECRET_HEADER = "x-bridge-secret"


def is_authorized(headers: Mapping[str, str], secret: str | None) -> bool:
    """Accept ``X-Bridge-Secret: <secret>`` or ``Authorization: Bearer <secret>``.

    Always true when no secret is configured.
    """
    if not secret:
        return True
    supplied = headers.get(SECRET_HEADER)
    if supplied is None:
        scheme, _, token = headers.get("authorization", "").partition(" ")
        if scheme.lower() == "bearer" and token:
            supplied = token.strip()
    if supplied is None:
        return False
    return hmac.compare_digest(supplied.encode(), secret.encode())
