# engine/queue_builder.py
# Candidate queue construction with an explicit, bounded fallback sequence

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

log = logging.getLogger("queue")

Filter = Callable[[Dict[str, Any], Dict[str, Any]], bool]

# looking -> gender it wants to see
WANTS = {"men": "male", "women": "female"}


def mutual_preference_filter() -> Filter:
    def _f(me: Dict[str, Any], cand: Dict[str, Any]) -> bool:
        return (
            WANTS.get((me.get("looking") or "").lower()) == (cand.get("gender") or "").lower()
            and WANTS.get((cand.get("looking") or "").lower()) == (me.get("gender") or "").lower()
        )
    return _f


def anyone_filter() -> Filter:
    def _f(me: Dict[str, Any], cand: Dict[str, Any]) -> bool:
        return True
    return _f


class CandidateQueueBuilder:
    """
    build(user_id, exclude_shown) walks a fixed list of attempts:
      1. mutual preference, shown-set excluded
      2. mutual preference, shown-set cleared
      3. anyone, shown-set excluded        (relax policy only)
      4. anyone, shown-set cleared         (relax policy only)
    and returns the first non-empty result, ordered by user id.
    """

    def __init__(self, db, sessions, relax_preferences: bool = True):
        self.db = db
        self.sessions = sessions
        self.relax_preferences = relax_preferences

    def _attempts(self):
        strict = mutual_preference_filter()
        attempts = [(strict, False), (strict, True)]
        if self.relax_preferences:
            relaxed = anyone_filter()
            attempts += [(relaxed, False), (relaxed, True)]
        return attempts

    async def build(self, user_id: int, exclude_shown: bool = True) -> List[Dict[str, Any]]:
        me = await self.db.find_one(user_id)
        if me is None:
            return []
        session = self.sessions.get_or_create(user_id)
        others = [u for u in await self.db.find_all() if u["user_id"] != user_id]

        for n, (accept, reset_shown) in enumerate(self._attempts(), start=1):
            if reset_shown:
                if not (exclude_shown and session.shown):
                    continue
                session.shown.clear()
            hidden = set(session.shown) if exclude_shown else set()
            picked = [c for c in others if c["user_id"] not in hidden and accept(me, c)]
            if picked:
                picked.sort(key=lambda c: c["user_id"])
                log.info("[queue] user=%s attempt=%d candidates=%d shown_excluded=%d population=%d",
                         user_id, n, len(picked), len(hidden), len(others) + 1)
                return picked

        log.info("[queue] user=%s no candidates (population=%d)", user_id, len(others) + 1)
        return []
