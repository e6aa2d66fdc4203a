"""
Per (trigger, entity) cooldown tracking.

State is process-local and in memory: a restart clears every cooldown, which
can at most cause one repeated notification burst. A shared key-value store
can replace the table behind the same interface if several instances must
agree.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

GLOBAL_ENTITY = "global"


@dataclass
class CooldownEntry:
    """Last fire of a trigger for one entity."""
    fired_at: datetime
    cooldown_minutes: int

    @property
    def expires_at(self) -> datetime:
        return self.fired_at + timedelta(minutes=self.cooldown_minutes)


class CooldownTracker:
    """
    Suppresses repeat fires of a trigger for the same entity within its window.

    A trigger with cooldown_minutes == 0 is never in cooldown. Otherwise it is
    eligible again once now >= last_fired + cooldown_minutes.
    """

    def __init__(self, retention_hours: float = 24):
        """
        Initialize the tracker.

        Args:
            retention_hours: Entries older than this become prunable, provided
                their cooldown window has also elapsed
        """
        self._entries: Dict[Tuple[str, str], CooldownEntry] = {}
        self._lock = Lock()
        self.retention = timedelta(hours=retention_hours)

    @staticmethod
    def _key(trigger_id: str, entity_key: Optional[str]) -> Tuple[str, str]:
        return trigger_id, entity_key or GLOBAL_ENTITY

    @staticmethod
    def _blocks(entry: Optional[CooldownEntry], cooldown_minutes: int, now: datetime) -> bool:
        if cooldown_minutes <= 0 or entry is None:
            return False
        return now < entry.fired_at + timedelta(minutes=cooldown_minutes)

    def is_in_cooldown(
        self,
        trigger_id: str,
        entity_key: Optional[str],
        cooldown_minutes: int,
        now: datetime,
    ) -> bool:
        with self._lock:
            entry = self._entries.get(self._key(trigger_id, entity_key))
            return self._blocks(entry, cooldown_minutes, now)

    def record_fired(
        self,
        trigger_id: str,
        entity_key: Optional[str],
        cooldown_minutes: int,
        now: datetime,
    ) -> None:
        with self._lock:
            self._entries[self._key(trigger_id, entity_key)] = CooldownEntry(now, cooldown_minutes)

    def claim(
        self,
        trigger_id: str,
        entity_key: Optional[str],
        cooldown_minutes: int,
        now: datetime,
    ) -> bool:
        """
        Atomically check the cooldown and record a fire.

        Returns:
            True if the fire was recorded, False if another fire landed
            inside the window first
        """
        key = self._key(trigger_id, entity_key)
        with self._lock:
            if self._blocks(self._entries.get(key), cooldown_minutes, now):
                return False
            self._entries[key] = CooldownEntry(now, cooldown_minutes)
            return True

    def last_fired(self, trigger_id: str, entity_key: Optional[str] = None) -> Optional[datetime]:
        with self._lock:
            entry = self._entries.get(self._key(trigger_id, entity_key))
            return entry.fired_at if entry else None

    def prune(self, now: datetime) -> int:
        """
        Drop entries older than the retention horizon whose window has elapsed.

        Returns:
            Number of entries removed
        """
        cutoff = now - self.retention
        with self._lock:
            stale = [
                key for key, entry in self._entries.items()
                if entry.fired_at < cutoff and entry.expires_at <= now
            ]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("cooldowns_pruned", count=len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["CooldownTracker", "CooldownEntry", "GLOBAL_ENTITY"]
