"""
Append-only ops event log.
"""

from typing import List

from ..core.rest import RowStore
from .schema import EVENTS_TABLE, KERNEL_AGENT, JsonObject


def create_event(store: RowStore, kind: str, title: str, summary: str,
                 tags: List[str] = None, proposal_id: str = None, mission_id: str = None,
                 step_id: str = None, meta: JsonObject = None) -> JsonObject:
    """Insert one event row and return it as stored."""
    rows = store.insert_rows(EVENTS_TABLE, [
        {
            "proposal_id": proposal_id,
            "mission_id": mission_id,
            "step_id": step_id,
            "kind": kind,
            "title": title,
            "summary": summary,
            "tags": list(tags or []),
            "meta": meta or {},
            "agent": KERNEL_AGENT,
        }
    ])
    return rows[0] if rows else {}
