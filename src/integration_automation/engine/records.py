"""File-backed record helpers shared by the stores.

The stores stand in for a real record store: JSON lists on disk, one file per
entity type, guarded by an in-process lock. Good enough for a single process;
a multi-process deployment needs a database with real constraints.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


@dataclass(frozen=True, slots=True)
class NotFound(Exception):
    """Raised when a record id does not resolve to a live record."""

    kind: str
    record_id: str

    def __str__(self) -> str:
        return f"{self.kind} not found: {self.record_id}"


def load_json_list(path: Path) -> list[dict[str, object]]:
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning(
            "State file is not valid JSON; treating as empty", extra={"path": str(path)}
        )
        return []
    if not isinstance(raw, list):
        logger.warning(
            "State file has unexpected shape; treating as empty", extra={"path": str(path)}
        )
        return []
    return [item for item in raw if isinstance(item, dict)]


def save_json_list(path: Path, items: Sequence[BaseModel]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [item.model_dump(mode="json") for item in items]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
