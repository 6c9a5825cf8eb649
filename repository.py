import asyncio
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Optional

from models import GuestRecord, parse_record, serialize_record


def iter_records(path) -> Iterator[GuestRecord]:
    """Yield every usable record of the log in file order.

    A missing file is an empty log; lines that do not decode are skipped.
    """
    path = Path(path)
    if not path.exists():
        return
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            record = parse_record(line)
            if record is None:
                if line.strip():
                    logging.debug(f"Skipping malformed line {line_no} in {path}")
                continue
            yield record


@dataclass
class GuestLog:
    """The log collapsed to its current state."""

    latest: dict = field(default_factory=dict)
    # own handle -> chat id, taken from every record that carries a handle
    handle_chats: dict = field(default_factory=dict)

    def add(self, record: GuestRecord):
        key = record.identity_key
        current = self.latest.get(key)
        if current is None or record.timestamp >= current.timestamp:
            self.latest[key] = record
        if record.telegram_username:
            self.handle_chats[record.telegram_username.lower()] = record.chat_id

    def active(self) -> list:
        return [r for r in self.latest.values() if r.is_active]

    def get(self, user_id: int, chat_id: int) -> Optional[GuestRecord]:
        return self.latest.get(user_id if user_id else chat_id)


def load_log(path) -> GuestLog:
    log = GuestLog()
    for record in iter_records(path):
        log.add(record)
    return log


def _latest_for(path, key: int) -> Optional[GuestRecord]:
    latest = None
    for record in iter_records(path):
        if record.identity_key != key:
            continue
        if latest is None or record.timestamp >= latest.timestamp:
            latest = record
    return latest


class GuestRepository:
    """Append-only JSON-lines log of guest records.

    Every read replays the whole file. Writers share one lock per instance.
    """

    def __init__(self, path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()
        self._last_timestamp = None

    def now(self) -> datetime:
        ts = datetime.now(timezone.utc)
        if self._last_timestamp is not None and ts <= self._last_timestamp:
            ts = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = ts
        return ts

    def _write_line(self, line: str):
        # The whole line goes out in one write; nothing in here can suspend.
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())

    def _seen(self, ts: datetime):
        if self._last_timestamp is None or ts > self._last_timestamp:
            self._last_timestamp = ts

    async def append(self, record: GuestRecord):
        line = serialize_record(record) + "\n"
        async with self._lock:
            self._write_line(line)
            self._seen(record.timestamp)

    async def latest_for(self, user_id: int, chat_id: int) -> Optional[GuestRecord]:
        key = user_id if user_id else chat_id
        return await asyncio.to_thread(_latest_for, self.path, key)

    async def replay(self) -> GuestLog:
        return await asyncio.to_thread(load_log, self.path)

    async def remove_avec_by_handle(self, handle: Optional[str]) -> int:
        """Clear the +1 slot of every active guest who named `handle` as their +1."""
        if not handle or not handle.strip():
            return 0
        handle = handle.strip().lower()

        async with self._lock:
            log = await asyncio.to_thread(load_log, self.path)
            affected = [
                r for r in log.latest.values()
                if r.is_active and r.avec_username and r.avec_username.lower() == handle
            ]
            for owner in affected:
                # must sort after the record it corrects
                ts = max(self.now(), owner.timestamp + timedelta(microseconds=1))
                self._write_line(serialize_record(owner.without_avec(ts)) + "\n")
                self._seen(ts)

        if affected:
            logging.info(f"Unlinked @{handle} from {len(affected)} guest(s) +1 slot")
        return len(affected)
