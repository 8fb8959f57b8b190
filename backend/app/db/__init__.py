"""
Storage Layer - JSON file store for tickets, requisitions, stop-clocks,
eNPS responses, users and sessions.

Each collection lives in its own file under ``DATA_DIR`` and is rewritten
atomically (unique temp file, then rename). One asyncio lock serializes every
mutation and every snapshot, so a KPI computation always works on a
consistent, deep-copied view of the data.
"""
import asyncio
import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Type

from fastapi import Request
from pydantic import BaseModel, ValidationError

from app.models.hr_models import (
    Requisition,
    Session,
    StopClockInterval,
    SurveyResponse,
    Ticket,
    User,
)
from app.services.perf_monitor import timed

logger = logging.getLogger("hcm-store")

# collection attribute -> (file name, entity model)
COLLECTIONS: Dict[str, tuple] = {
    "tickets":      ("tickets.json", Ticket),
    "requisitions": ("requisitions.json", Requisition),
    "stop_clocks":  ("stopClocks.json", StopClockInterval),
    "enps":         ("enps.json", SurveyResponse),
    "users":        ("users.json", User),
    "sessions":     ("sessions.json", Session),
}


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------

def read_json(path: str, fallback: Any) -> Any:
    """Parse ``path``; return ``fallback`` when the file is missing or unreadable."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return fallback
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read {path}, using fallback: {e}")
        return fallback


@timed
def write_json(path: str, data: Any) -> None:
    """Write ``data`` as pretty JSON via a unique temp file + rename."""
    directory, name = os.path.split(path)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=directory or ".", prefix=name + ".", suffix=".tmp", delete=False
    ) as f:
        tmp = f.name
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def _revive(records: Any, model: Type[BaseModel], name: str) -> list:
    if not isinstance(records, list):
        logger.warning(f"{name}: expected a JSON array, got {type(records).__name__}; ignoring")
        return []
    revived = []
    for raw in records:
        try:
            revived.append(model.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"{name}: skipping malformed record: {e.error_count()} error(s)")
    return revived


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

@dataclass
class StoreSnapshot:
    """Deep copy of the entity collections, safe to hand to the KPI engine."""
    tickets: List[Ticket] = field(default_factory=list)
    requisitions: List[Requisition] = field(default_factory=list)
    stop_clocks: List[StopClockInterval] = field(default_factory=list)
    enps: List[SurveyResponse] = field(default_factory=list)


class JsonStore:
    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.tickets: List[Ticket] = []
        self.requisitions: List[Requisition] = []
        self.stop_clocks: List[StopClockInterval] = []
        self.enps: List[SurveyResponse] = []
        self.users: List[User] = []
        self.sessions: List[Session] = []
        self._lock = asyncio.Lock()
        # One writer per collection file; held across serialize + write
        self._write_locks: Dict[str, asyncio.Lock] = {name: asyncio.Lock() for name in COLLECTIONS}

    def path(self, file_name: str) -> str:
        return os.path.join(self.data_dir, file_name)

    async def load(self, seed_demo: bool = True) -> None:
        """Read every collection from disk; seed demo data on an empty store."""
        await asyncio.to_thread(os.makedirs, self.data_dir, exist_ok=True)
        async with self._lock:
            for attr, (file_name, model) in COLLECTIONS.items():
                raw = await asyncio.to_thread(read_json, self.path(file_name), [])
                setattr(self, attr, _revive(raw, model, file_name))
            logger.info(
                f"Store loaded from {self.data_dir}: {len(self.tickets)} tickets, "
                f"{len(self.requisitions)} requisitions, {len(self.stop_clocks)} stop-clocks"
            )

        if seed_demo and not self.tickets:
            from app.db.seed import demo_requisitions, demo_tickets
            async with self._lock:
                self.tickets = demo_tickets()
                self.requisitions = demo_requisitions()
            await self.save("tickets")
            await self.save("requisitions")
            logger.info("Empty store seeded with demo tickets and requisitions")

    async def save(self, collection: str) -> None:
        """
        Persist one collection (attribute name, e.g. ``"stop_clocks"``).

        Saves of the same collection run one at a time, and each one
        serializes the collection as it is when its turn comes, so the last
        write on disk always carries the newest state.
        """
        file_name, _ = COLLECTIONS[collection]
        async with self._write_locks[collection]:
            async with self._lock:
                data = [item.to_json_dict() for item in getattr(self, collection)]
            await asyncio.to_thread(write_json, self.path(file_name), data)

    async def snapshot(self) -> StoreSnapshot:
        async with self._lock:
            return StoreSnapshot(
                tickets=[t.model_copy(deep=True) for t in self.tickets],
                requisitions=[r.model_copy(deep=True) for r in self.requisitions],
                stop_clocks=[s.model_copy(deep=True) for s in self.stop_clocks],
                enps=[e.model_copy(deep=True) for e in self.enps],
            )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["JsonStore"]:
        """
        Hold the store lock while mutating the live collections.

        The lock is not re-entrant: call ``save`` after the block exits.
        """
        async with self._lock:
            yield self


def get_store(request: Request) -> JsonStore:
    """FastAPI dependency: the store opened by the app lifespan."""
    return request.app.state.store
