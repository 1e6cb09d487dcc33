"""toolbridge — expose schema-validated upstream HTTP tools over stdio, SSE and WebSocket."""

from __future__ import annotations

__version__ = "0.1.0"
