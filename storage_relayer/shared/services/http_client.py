"""
HTTP client for the remote proving service.

A single pooled httpx client is shared by the proving backend. Only one
proof is in flight at a time, so the pool is kept small. Proof generation
can take minutes: connecting is bounded, waiting for the response is not
unless the caller sets a limit.
"""

import os
from typing import Optional

import httpx

CONNECT_TIMEOUT = float(os.getenv("PROVER_CONNECT_TIMEOUT", "10"))
USER_AGENT = os.getenv("PROVER_HTTP_UA", "storage-relayer/0.1")

_client: Optional[httpx.Client] = None


def proving_timeout(read: Optional[float] = None) -> httpx.Timeout:
    """Timeout for a proving request; ``read=None`` waits for the proof."""
    return httpx.Timeout(read, connect=CONNECT_TIMEOUT)


def get_client() -> httpx.Client:
    """Get the shared proving-service client."""
    global _client
    if _client is None:
        _client = httpx.Client(
            timeout=proving_timeout(),
            limits=httpx.Limits(max_keepalive_connections=1, max_connections=2),
            headers={"User-Agent": USER_AGENT},
        )
    return _client


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
