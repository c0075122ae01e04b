"""Indexer RPC client — async HTTP access to the ledger indexer.

Bridge boundary
---------------
Everything network-shaped lives here.  Callers see two outcomes per call:
a decoded value, or an ``IndexerError``.  Every public fetch is already
wrapped in the ``BackoffRetrier``, so a raised error means the retry
budget is spent.

Endpoints (relative to ``base_url``)::

    GET /health
    GET /blocks             -> {"blocks": [...]}
    GET /height             -> {"height": n}
    GET /balance?address=   -> {"available", "incoming", "current"}
    GET /utxo?address=      -> {"utxo": [...]}
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from indexwatch.core.retrier import BackoffRetrier, SleepFn
from indexwatch.models.blocks import AddressReport, Balance, Block, Utxo
from indexwatch.models.config import RetryPolicy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class IndexerError(RuntimeError):
    """Base class for failures talking to the indexer."""


class TransportError(IndexerError):
    """Network or connectivity failure (DNS, refused, timeout)."""


class ProtocolError(IndexerError):
    """The indexer answered, but not with a usable success response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Interface consumed by the ConnectionMachine
# ---------------------------------------------------------------------------

class IndexerAPI(Protocol):
    """The five calls the monitor needs.  Each is a single fallible coroutine."""

    async def fetch_health(self) -> Any: ...

    async def fetch_blocks(self) -> list[Block]: ...

    async def fetch_tip_height(self) -> int: ...

    async def fetch_balance(self, address: str) -> Balance: ...

    async def fetch_utxos(self, address: str) -> list[Utxo]: ...


class ConnectionCheck(BaseModel):
    """Outcome of ``IndexerClient.test_connection``."""

    model_config = ConfigDict(frozen=True)

    success: bool
    response_time_ms: int | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class IndexerClient:
    """Async HTTP client for the indexer service.

    Parameters
    ----------
    base_url:
        Root URL of the indexer API (e.g. ``http://localhost:8080/api``).
    timeout:
        Per-request timeout in seconds.
    retry_policy:
        Backoff policy applied to every public fetch.
    http_client:
        Pre-built ``httpx.AsyncClient``.  Tests pass one with a
        ``MockTransport``.  When given, the caller owns its lifetime.
    sleep:
        Forwarded to the retrier (tests skip real backoff waits).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )
        self._retrier = BackoffRetrier(
            retry_policy, retry_on=(IndexerError,), sleep=sleep
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> IndexerClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_health(self) -> Any:
        """Liveness probe.  Returns whatever ``/health`` decodes to."""
        return await self._call("/health")

    async def fetch_blocks(self) -> list[Block]:
        """Latest page of blocks, newest first."""
        data = await self._call("/blocks")
        raw = data.get("blocks") if isinstance(data, dict) else None
        return self._parse(lambda: [Block.model_validate(b) for b in raw or []])

    async def fetch_tip_height(self) -> int:
        data = await self._call("/height")
        if not isinstance(data, dict) or "height" not in data:
            raise ProtocolError(f"Malformed /height response: {data!r}")
        return self._parse(lambda: int(data["height"]))

    async def fetch_balance(self, address: str) -> Balance:
        data = await self._call("/balance", params={"address": address})
        return self._parse(lambda: Balance.model_validate(data))

    async def fetch_utxos(self, address: str) -> list[Utxo]:
        data = await self._call("/utxo", params={"address": address})
        raw = data.get("utxo") if isinstance(data, dict) else None
        return self._parse(lambda: [Utxo.model_validate(u) for u in raw or []])

    async def lookup_address(self, address: str) -> AddressReport:
        """Fetch balance and UTXOs for ``address`` concurrently."""
        balance, utxos = await asyncio.gather(
            self.fetch_balance(address),
            self.fetch_utxos(address),
        )
        return AddressReport(address=address, balance=balance, utxos=utxos)

    async def test_connection(self) -> ConnectionCheck:
        """Probe ``/health`` and report the outcome without raising."""
        logger.info("Testing connection to indexer at %s", self._base_url)
        started = time.monotonic()
        try:
            await self.fetch_health()
        except IndexerError as exc:
            logger.error("Indexer connection failed: %s", exc)
            return ConnectionCheck(success=False, error=str(exc))
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info("Indexer connection successful (%dms)", elapsed_ms)
        return ConnectionCheck(success=True, response_time_ms=elapsed_ms)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _call(self, endpoint: str, *, params: dict[str, str] | None = None) -> Any:
        return await self._retrier.run(
            lambda: self._request(endpoint, params=params),
            description=f"GET {endpoint}",
        )

    async def _request(self, endpoint: str, *, params: dict[str, str] | None = None) -> Any:
        url = f"{self._base_url}{endpoint}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = await self._http.get(url, params=params)
        except httpx.DecodingError as exc:
            raise ProtocolError(f"Undecodable body from {endpoint}: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # TransportError, TooManyRedirects and friends
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        logger.debug("%s -> %d %s", url, response.status_code, response.reason_phrase)
        if not response.is_success:
            text = response.text.strip()
            raise ProtocolError(
                f"HTTP {response.status_code}: {text or response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError(f"Invalid JSON from {endpoint}: {exc}") from exc

    @staticmethod
    def _parse(build: Any) -> Any:
        try:
            return build()
        except (ValidationError, TypeError, ValueError, OverflowError) as exc:
            raise ProtocolError(f"Malformed payload: {exc}") from exc
