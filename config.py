import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def data_dir() -> Path:
    return Path(os.getenv("DATA_DIR", "data"))


def guests_path() -> Path:
    return Path(os.getenv("GUESTS_PATH") or data_dir() / "rsvps.jsonl")


def group_admins_path() -> Path:
    return Path(os.getenv("GROUP_ADMINS_PATH") or data_dir() / "group_admins.json")


@dataclass
class Config:
    bot_token: str
    group_id: int
    admin_user_id: Optional[int] = None
    admin_username: Optional[str] = None
    guests_path: Path = Path("data/rsvps.jsonl")
    group_admins_path: Path = Path("data/group_admins.json")
    party_info_text: Optional[str] = None
    party_info_image: Optional[str] = None
    broadcast_delay: float = 0.04


def load_config() -> Config:
    load_dotenv()

    bot_token = os.getenv("BOT_TOKEN")
    if not bot_token:
        raise ValueError("BOT_TOKEN environment variable is not set")

    group_setting = os.getenv("GROUP_ID", "").strip()
    try:
        group_id = int(group_setting)
    except ValueError:
        raise ValueError("GROUP_ID must be set to the numeric Telegram group id, e.g. -1001234567890")

    admin_user_id = None
    admin_username = None
    admin_setting = os.getenv("ADMIN_USER", "").strip()
    if admin_setting:
        try:
            admin_user_id = int(admin_setting)
        except ValueError:
            admin_username = admin_setting

    return Config(
        bot_token=bot_token,
        group_id=group_id,
        admin_user_id=admin_user_id,
        admin_username=admin_username,
        guests_path=guests_path(),
        group_admins_path=group_admins_path(),
        party_info_text=os.getenv("PARTY_INFO_TEXT") or None,
        party_info_image=os.getenv("PARTY_INFO_IMAGE") or None,
        broadcast_delay=float(os.getenv("BROADCAST_DELAY", "0.04")),
    )
