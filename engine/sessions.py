# engine/sessions.py
# Per-user in-memory dialogue state: step, drafts, swipe queue and shown-set

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Union

CREATE_FIELDS = ("name_choice", "name", "age", "gender", "looking", "intention", "bio", "photos")
EDIT_FIELDS = ("name", "age", "bio", "photos")


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Creating:
    field: str

    def __post_init__(self):
        if self.field not in CREATE_FIELDS:
            raise ValueError(f"unknown creation field: {self.field}")


@dataclass(frozen=True)
class Editing:
    field: str

    def __post_init__(self):
        if self.field not in EDIT_FIELDS:
            raise ValueError(f"unknown edit field: {self.field}")


@dataclass(frozen=True)
class AwaitingMessage:
    target_id: int


@dataclass(frozen=True)
class AwaitingDeletionReason:
    pass


Step = Union[Idle, Creating, Editing, AwaitingMessage, AwaitingDeletionReason]
IDLE = Idle()


@dataclass
class Session:
    user_id: int
    step: Step = IDLE
    draft: Dict[str, Any] = field(default_factory=dict)
    photos: List[str] = field(default_factory=list)
    queue: List[Dict[str, Any]] = field(default_factory=list)
    shown: List[int] = field(default_factory=list)
    last_preference: Optional[str] = None

    def mark_shown(self, user_id: int) -> None:
        if user_id not in self.shown:
            self.shown.append(user_id)

    def reset_browsing(self) -> None:
        self.queue.clear()
        self.shown.clear()

    def reset_draft(self) -> None:
        self.draft.clear()
        self.photos.clear()


class SessionStore(Protocol):
    def get_or_create(self, user_id: int) -> Session: ...
    def get(self, user_id: int) -> Optional[Session]: ...
    def discard(self, user_id: int) -> None: ...
    def __len__(self) -> int: ...


class MemorySessionStore:
    """Process-local session map. Created once at startup and passed to every component."""

    def __init__(self):
        self._sessions: Dict[int, Session] = {}

    def get_or_create(self, user_id: int) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._sessions[user_id] = Session(user_id)
        return session

    def get(self, user_id: int) -> Optional[Session]:
        return self._sessions.get(user_id)

    def discard(self, user_id: int) -> None:
        self._sessions.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
