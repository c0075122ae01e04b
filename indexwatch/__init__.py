"""indexwatch: live monitoring client for a ledger indexing service.

Polls the indexer for its latest blocks and tip height, flags newly
observed blocks, predicts when the next one should arrive, and reconnects
with a visible countdown whenever the indexer goes away.
"""

__version__ = "0.1.0"
__description__ = "Live monitoring client for a ledger indexing service"

from indexwatch.bridge.indexer_client import IndexerClient
from indexwatch.core.state_machine import ConnectionMachine
from indexwatch.monitor.projection import MonitorView

__all__ = ["ConnectionMachine", "IndexerClient", "MonitorView", "__version__"]
