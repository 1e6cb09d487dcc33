"""Upstream layer — the generic HTTP helper used by tool handlers."""

from toolbridge.upstream.client import UpstreamClient
from toolbridge.upstream.models import UpstreamMeta, UpstreamResponse

__all__ = [
    "UpstreamClient",
    "UpstreamMeta",
    "UpstreamResponse",
]
