"""Confirm locally computed line tax against the authoritative calculation service.

Every edit of a line produces an optimistic local result straight away and a
request to the service. Responses can come back out of order, so each request
carries a per-line sequence number and only the response to the most recently
issued request is ever applied. Nothing is cancelled; stale results are
dropped when they arrive.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Hashable, Optional, Protocol

import httpx
from pydantic import ValidationError

from .schemas import OracleRequest, TaxBreakdown

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)


class OracleUnavailable(Exception):
    """The authoritative result could not be obtained."""


class TaxOracle(Protocol):
    async def calculate(self, request: OracleRequest) -> TaxBreakdown:
        ...


class HttpTaxOracle:
    def __init__(
        self,
        base_url: str,
        path: str = "/api/tenant/purchases/calculate-item",
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url
        self.path = path
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, config: "Settings", client: Optional[httpx.AsyncClient] = None) -> "HttpTaxOracle":
        return cls(config.oracle_base_url, path=config.oracle_path, timeout=config.oracle_timeout, client=client)

    async def calculate(self, request: OracleRequest) -> TaxBreakdown:
        payload = request.model_dump(mode="json")
        try:
            if self._client is not None:
                response = await self._client.post(self.path, json=payload)
            else:
                async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
                    response = await client.post(self.path, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise OracleUnavailable(str(exc)) from exc

        data = body.get("data", body) if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise OracleUnavailable("unexpected response body")
        try:
            return TaxBreakdown.model_validate(data)
        except ValidationError as exc:
            raise OracleUnavailable(str(exc)) from exc


class LineSequencer:
    """Monotonic request numbers, remembered per line."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest: Dict[Hashable, int] = {}

    def issue(self, line_key: Hashable) -> int:
        sequence = next(self._counter)
        self._latest[line_key] = sequence
        return sequence

    def is_latest(self, line_key: Hashable, sequence: int) -> bool:
        return self._latest.get(line_key) == sequence

    def forget(self, line_key: Hashable) -> None:
        self._latest.pop(line_key, None)


@dataclass(frozen=True)
class Ticket:
    line_key: Hashable
    sequence: int


class AuthoritativeConfirmer:
    def __init__(self, oracle: TaxOracle, sequencer: Optional[LineSequencer] = None) -> None:
        self.oracle = oracle
        self.sequencer = sequencer or LineSequencer()

    def issue(self, line_key: Hashable) -> Ticket:
        return Ticket(line_key=line_key, sequence=self.sequencer.issue(line_key))

    async def confirm(self, ticket: Ticket, request: OracleRequest) -> Optional[TaxBreakdown]:
        """Return the authoritative breakdown, or None if it is stale or unavailable."""
        try:
            result = await self.oracle.calculate(request)
        except OracleUnavailable as exc:
            logger.warning("authoritative tax unavailable for line %s, keeping local result: %s", ticket.line_key, exc)
            return None
        if not self.sequencer.is_latest(ticket.line_key, ticket.sequence):
            logger.debug("discarding stale result #%d for line %s", ticket.sequence, ticket.line_key)
            return None
        return result


def build_confirmer(config: "Settings") -> AuthoritativeConfirmer:
    return AuthoritativeConfirmer(HttpTaxOracle.from_settings(config))
