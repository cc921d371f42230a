"""
core/http.py
────────────
Shared ``httpx.AsyncClient`` handling for the upstream clients.

A service constructed with a client reuses it (connection pooling, tests
with ``httpx.MockTransport``); otherwise a short-lived client is opened
per call and closed afterwards.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx


@asynccontextmanager
async def client_session(
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield ``client`` if given, else a fresh client closed on exit."""
    if client is not None:
        yield client
    else:
        async with httpx.AsyncClient(timeout=timeout) as new_client:
            yield new_client
