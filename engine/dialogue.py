# engine/dialogue.py
# Routes free text and photos to the flow that owns the user's current step

from typing import List, Optional

from engine.replies import Reply
from engine.sessions import AwaitingDeletionReason, AwaitingMessage, Creating, Editing


class Dialogue:
    def __init__(self, sessions, profiles, matching):
        self.sessions = sessions
        self.profiles = profiles
        self.matching = matching

    async def on_text(self, user_id: int, text: str, *, username: Optional[str] = None) -> List[Reply]:
        if not text or text.startswith("/"):
            return []  # commands are dispatched elsewhere
        session = self.sessions.get(user_id)
        if session is None:
            return []
        step = session.step
        if isinstance(step, Creating):
            return self.profiles.create_text(user_id, text)
        if isinstance(step, Editing):
            return await self.profiles.edit_text(user_id, text)
        if isinstance(step, AwaitingMessage):
            return await self.matching.send_message(user_id, text)
        if isinstance(step, AwaitingDeletionReason):
            return await self.profiles.delete_with_reason(user_id, text, username)
        return []

    async def on_photo(self, user_id: int, file_id: str) -> List[Reply]:
        session = self.sessions.get(user_id)
        if session is None:
            return []
        if session.step == Creating("photos"):
            return await self.profiles.add_photo(user_id, file_id)
        if session.step == Editing("photos"):
            return self.profiles.edit_add_photo(user_id, file_id)
        return []
