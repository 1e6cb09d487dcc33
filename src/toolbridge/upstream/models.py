"""Upstream response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class UpstreamMeta(BaseModel):
    """Transport metadata for one upstream call.

    Rate-limit and request-id headers are optional on the upstream side;
    absent headers are ``None``.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: str
    status: int
    limit: int | None = None
    remaining: int | None = None
    reset: str | None = None
    request_id: str | None = None


class UpstreamResponse(BaseModel):
    """A successful upstream call: parsed body plus metadata."""

    data: Any = None
    meta: UpstreamMeta

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "meta": self.meta.model_dump()}
