import json
import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class GuestStatus(str, Enum):
    ACTIVE = "Active"
    DELETED = "Deleted"


class Step(Enum):
    ASK_LANGUAGE = "ask_language"
    ASK_ACTION = "ask_action"
    ASK_FULL_NAME = "ask_full_name"
    ASK_PLUS_ONE = "ask_plus_one"
    ASK_AVEC_NAME = "ask_avec_name"
    ASK_AVEC_HANDLE = "ask_avec_handle"
    CHANGE_AVEC_NAME = "change_avec_name"
    CHANGE_AVEC_HANDLE = "change_avec_handle"
    COMPLETED = "completed"


@dataclass(frozen=True)
class GuestRecord:
    """One state change of a guest. Never modified once written."""

    chat_id: int
    user_id: int
    timestamp: datetime
    language: str
    full_name: str
    avec_full_name: Optional[str] = None
    telegram_username: Optional[str] = None
    avec_username: Optional[str] = None
    status: GuestStatus = GuestStatus.ACTIVE

    @property
    def identity_key(self) -> int:
        return self.user_id if self.user_id else self.chat_id

    @property
    def is_active(self) -> bool:
        return self.status != GuestStatus.DELETED

    def without_avec(self, timestamp: datetime) -> "GuestRecord":
        return replace(
            self,
            timestamp=timestamp,
            avec_full_name=None,
            avec_username=None,
            status=GuestStatus.ACTIVE,
        )


# Field order of a log line
JSON_FIELDS = {
    "chatId": "chat_id",
    "userId": "user_id",
    "timestamp": "timestamp",
    "language": "language",
    "fullName": "full_name",
    "avecFullName": "avec_full_name",
    "telegramUsername": "telegram_username",
    "avecUsername": "avec_username",
    "status": "status",
}
_LOWER_FIELDS = {key.lower(): attr for key, attr in JSON_FIELDS.items()}


def format_timestamp(ts: datetime) -> str:
    return ts.isoformat()


# fromisoformat before 3.11 takes only 3 or 6 fractional digits
_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    value = value.replace("Z", "+00:00")
    value = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def serialize_record(record: GuestRecord) -> str:
    payload = {}
    for key, attr in JSON_FIELDS.items():
        value = getattr(record, attr)
        if attr == "timestamp":
            value = format_timestamp(value)
        elif attr == "status":
            value = value.value
        payload[key] = value
    return json.dumps(payload, ensure_ascii=False)


def parse_record(line: str) -> Optional[GuestRecord]:
    """Decode one log line, or return None when it cannot be used."""
    line = line.strip()
    if not line:
        return None
    try:
        raw = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(raw, dict):
        return None

    values = {}
    for key, value in raw.items():
        attr = _LOWER_FIELDS.get(str(key).lower())
        if attr:
            values[attr] = value

    try:
        status = values.get("status")
        deleted = isinstance(status, str) and status.lower() == "deleted"
        return GuestRecord(
            chat_id=int(values["chat_id"]),
            user_id=int(values.get("user_id") or 0),
            timestamp=parse_timestamp(values["timestamp"]),
            language=values.get("language") or "en",
            full_name=values.get("full_name") or "",
            avec_full_name=values.get("avec_full_name") or None,
            telegram_username=values.get("telegram_username") or None,
            avec_username=values.get("avec_username") or None,
            status=GuestStatus.DELETED if deleted else GuestStatus.ACTIVE,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logging.debug(f"Skipping unusable guest record: {e}")
        return None


@dataclass
class Session:
    chat_id: int
    step: Step = Step.ASK_LANGUAGE
    user_id: Optional[int] = None
    username: Optional[str] = None
    language: Optional[str] = None
    full_name: Optional[str] = None
    wants_plus_one: bool = False
    avec_full_name: Optional[str] = None
    avec_username: Optional[str] = None

    @property
    def lang(self) -> str:
        return self.language or "en"

    def reset(self):
        self.step = Step.ASK_LANGUAGE
        self.language = None
        self.full_name = None
        self.wants_plus_one = False
        self.avec_full_name = None
        self.avec_username = None

    def clear_avec(self):
        self.wants_plus_one = False
        self.avec_full_name = None
        self.avec_username = None

    def restore(self, record: GuestRecord):
        self.step = Step.COMPLETED
        self.language = record.language
        self.full_name = record.full_name
        self.wants_plus_one = bool(record.avec_full_name)
        self.avec_full_name = record.avec_full_name
        self.avec_username = record.avec_username


@dataclass
class SessionStore:
    """In-memory conversations keyed by chat id.

    Lives on the event loop thread only. get_or_create has no suspension
    point, so two chats inserting at once can never clobber each other.
    """

    sessions: dict = field(default_factory=dict)

    def get(self, chat_id: int) -> Optional[Session]:
        return self.sessions.get(chat_id)

    def get_or_create(self, chat_id: int) -> Session:
        session = self.sessions.get(chat_id)
        if session is None:
            session = Session(chat_id=chat_id)
            self.sessions[chat_id] = session
        return session

    def __contains__(self, chat_id) -> bool:
        return chat_id in self.sessions

    def __len__(self) -> int:
        return len(self.sessions)
