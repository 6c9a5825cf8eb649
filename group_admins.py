import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path


class GroupAdminStore:
    """Extra admins per group, kept in one JSON document.

    Every change reloads the file, edits it in memory and writes it back
    through a temp file, all under one lock.
    """

    def __init__(self, path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
            return {int(group): {int(u) for u in users} for group, users in raw.items()}
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to read group admins from {self.path}: {e}")
            return {}

    def _save(self, admins: dict):
        data = {str(group): sorted(users) for group, users in admins.items()}
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    async def get_admins(self, group_id: int) -> set:
        return set(self._load().get(group_id, set()))

    async def list_admins(self) -> dict:
        return self._load()

    async def add_admin(self, group_id: int, user_id: int) -> bool:
        async with self._lock:
            admins = self._load()
            users = admins.setdefault(group_id, set())
            if user_id in users:
                return False
            users.add(user_id)
            self._save(admins)
        logging.info(f"Added group admin {user_id} to {group_id}")
        return True

    async def remove_admin(self, group_id: int, user_id: int) -> bool:
        async with self._lock:
            admins = self._load()
            users = admins.get(group_id)
            if not users or user_id not in users:
                return False
            users.discard(user_id)
            if not users:
                del admins[group_id]
            self._save(admins)
        logging.info(f"Removed group admin {user_id} from {group_id}")
        return True
