"""Bridges to external services.

Modules
-------
indexer_client
    ``IndexerClient``: httpx-based access to the ledger indexer API.
"""

from indexwatch.bridge.indexer_client import (
    ConnectionCheck,
    IndexerAPI,
    IndexerClient,
    IndexerError,
    ProtocolError,
    TransportError,
)

__all__ = [
    "ConnectionCheck",
    "IndexerAPI",
    "IndexerClient",
    "IndexerError",
    "ProtocolError",
    "TransportError",
]
