"""Core engine: catalog, workflow model, validator, marketplace and test harness.

Nothing in this package talks to the network. Persistence goes through small
JSON-file stores that stand in for a real record store.
"""

from __future__ import annotations

__all__: list[str] = []
