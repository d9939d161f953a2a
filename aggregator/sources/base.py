"""
Base downstream source interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from aggregator.services.client import Decoder, DownstreamClient
from aggregator.services.outcome import CallOutcome


def unwrap_list(payload: Any, key: str) -> list[Any]:
    """
    Return the list of items in a downstream payload.

    Accepts a bare JSON array or an object wrapping it under ``key``
    (``{"posts": [...]}``). Anything else is undecodable.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    raise ValueError(f"expected a list or an object with a '{key}' list")


def count_items(payload: Any, key: str) -> int:
    """
    Return the number of items a downstream payload reports.

    Accepts a bare array (its length), an object wrapping an array under
    ``key``, or an object carrying an integer under ``key`` or ``count``.
    """
    if isinstance(payload, dict):
        for field in (key, "count"):
            value = payload.get(field)
            if isinstance(value, int) and not isinstance(value, bool):
                if value < 0:
                    raise ValueError(f"negative count for '{field}'")
                return value
    return len(unwrap_list(payload, key))


class BaseSource(ABC):
    """
    Abstract base class for all downstream sources.

    All sources should:
    - Use DownstreamClient for HTTP requests (retry, timeouts, classification)
    - Return CallOutcome values, never raise for downstream problems
    - Decode only the minimal shape the aggregations need
    """

    def __init__(self, client: DownstreamClient):
        self.client = client

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Name of the registered endpoint this source talks to."""
        ...

    async def _get(
        self,
        path: str,
        auth_token: str | None,
        params: dict[str, Any] | None = None,
        decode: Decoder | None = None,
    ) -> CallOutcome:
        return await self.client.call_with_retry(
            self.service_id,
            path,
            auth_token=auth_token,
            params=params,
            decode=decode,
        )
