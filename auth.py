from typing import Optional

from validation import clean_handle


class Authorizer:
    """Superadmin by id or handle, plus per-group admins for the one group."""

    def __init__(self, group_id: int, group_admins, admin_user_id: Optional[int] = None,
                 admin_username: Optional[str] = None):
        self.group_id = group_id
        self.group_admins = group_admins
        self.admin_user_id = admin_user_id
        self.admin_username = clean_handle(admin_username)

    def allows_chat(self, chat_id: int, is_private: bool) -> bool:
        return is_private or chat_id == self.group_id

    def is_super_admin(self, user_id: Optional[int], username: Optional[str]) -> bool:
        if self.admin_user_id is not None and user_id is not None and user_id == self.admin_user_id:
            return True
        if self.admin_username:
            handle = clean_handle(username)
            if handle and handle == self.admin_username:
                return True
        return False

    async def is_admin(self, user_id: Optional[int], username: Optional[str], chat_id: int,
                       is_private: bool) -> bool:
        if self.is_super_admin(user_id, username):
            return True
        if is_private or user_id is None or chat_id != self.group_id:
            return False
        return user_id in await self.group_admins.get_admins(self.group_id)
