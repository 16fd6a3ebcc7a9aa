# =============================================================================
# Conversation Ledger — Bounded Record of Agent Outputs
# =============================================================================
#
# Each stage of the coordinated pipeline appends what it produced; later
# stages and later requests for the same company read the most recent
# entries back as prompt context.
#
# LIMITS (configurable, see Settings):
#   - an entry's content is truncated to 1200 characters on append
#   - a ledger keeps at most 24 entries (oldest dropped first)
#   - prompt context shows the last 8 entries, each cut to 500 characters
#
# DESIGN DECISION: Explicit LedgerStore instead of a global map.
# The store is owned by the orchestrator and handed to the pipeline. Keys
# are normalized company names. `session()` holds a per-key asyncio.Lock so
# concurrent requests for one company append in a well-defined order.
# Locks are discarded when the last session for a key ends. Ledgers
# themselves are kept for the process lifetime.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

from finanalyzer.config import settings
from finanalyzer.services.normalizer import limit_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    """One agent output, already truncated."""

    agent: str
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class ConversationLedger:
    """Append-only, bounded history of agent outputs for one conversation."""

    def __init__(
        self,
        max_entries: int | None = None,
        entry_chars: int | None = None,
    ) -> None:
        self._max_entries = max_entries or settings.ledger_max_entries
        self._entry_chars = entry_chars or settings.ledger_entry_chars
        self._entries: deque[LedgerEntry] = deque(maxlen=self._max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[LedgerEntry, ...]:
        return tuple(self._entries)

    def append(self, agent: str, content: str) -> LedgerEntry:
        entry = LedgerEntry(
            agent=agent,
            content=limit_text(content, self._entry_chars),
        )
        self._entries.append(entry)
        return entry

    def recent(self, count: int) -> list[LedgerEntry]:
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    def format_for_prompt(
        self,
        limit: int | None = None,
        max_chars: int | None = None,
    ) -> str:
        """Render the most recent entries as '[AGENT] content' lines."""
        recent = self.recent(limit or settings.ledger_context_entries)
        if not recent:
            return "No prior context available."
        chars = max_chars or settings.ledger_context_chars
        return "\n".join(
            f"[{entry.agent.upper() if entry.agent else 'CONTEXT'}] "
            f"{limit_text(entry.content, chars)}"
            for entry in recent
        )


@dataclass
class _KeyLock:
    """A per-company lock, removed once no session holds or awaits it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class LedgerStore:
    """Ledgers keyed by normalized company identity, for the process lifetime."""

    def __init__(self) -> None:
        self._ledgers: dict[str, ConversationLedger] = {}
        self._locks: dict[str, _KeyLock] = {}

    @staticmethod
    def normalize_key(company_name: str | None) -> str:
        key = re.sub(r"\s+", " ", (company_name or "").strip().lower())
        return key or "unknown"

    def get(self, company_name: str | None) -> ConversationLedger:
        key = self.normalize_key(company_name)
        ledger = self._ledgers.get(key)
        if ledger is None:
            ledger = ConversationLedger()
            self._ledgers[key] = ledger
        return ledger

    def reset(self, company_name: str | None) -> None:
        self._ledgers.pop(self.normalize_key(company_name), None)

    @asynccontextmanager
    async def session(self, company_name: str | None) -> AsyncIterator[ConversationLedger]:
        """Exclusive access to one company's ledger for the duration of a request."""
        key = self.normalize_key(company_name)
        entry = self._locks.setdefault(key, _KeyLock())
        entry.users += 1
        try:
            async with entry.lock:
                logger.debug("Ledger session opened for '%s'", key)
                yield self.get(key)
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]
