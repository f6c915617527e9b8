"""Provider capability shared by all catalog clients."""

from typing import Protocol, runtime_checkable

import httpx

from ..errors import ProviderError
from ..models import Candidate, SearchStrategy


@runtime_checkable
class ProviderAdapter(Protocol):
    """Anything that can run one search strategy against a catalog.

    ``search`` may raise; the orchestrator treats any exception as an
    empty result for that strategy.
    """

    async def search(self, strategy: SearchStrategy) -> list[Candidate]: ...


async def request_json(
    client: httpx.AsyncClient,
    source: str,
    path: str,
    params: dict | None = None,
) -> dict:
    """GET ``path`` and decode the JSON body.

    Transport errors, non-2xx statuses and undecodable bodies are all
    raised as ProviderError, categorized by status code when one exists.
    """
    try:
        resp = await client.get(path, params=params)
    except httpx.HTTPError as e:
        raise ProviderError(source, f"request to {path} failed: {e}") from e

    if resp.is_error:
        raise ProviderError(
            source,
            f"{path} returned HTTP {resp.status_code}",
            status_code=resp.status_code,
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise ProviderError(source, f"invalid JSON from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ProviderError(source, f"unexpected payload type from {path}")
    return data
