"""
engine/matching.py: candidate presentation and swipe actions.
Every operation takes the acting user's id and returns the replies for that user;
messages for other users go through the Notifier and never block the caller.
Operations:
  - present_next(user_id)
  - skip(user_id, target_id) / like(user_id, target_id)
  - request_message(user_id, target_id) / send_message(user_id, text)
  - report(user_id, target_id)
  - list_matches(user_id)
"""

import logging
from typing import Any, Dict, List

import keyboards as kb
from config import MATCH_RESUME_DELAY
from engine.payments import purchase_offer
from engine.replies import Reply
from engine.sessions import IDLE, AwaitingMessage
from texts_ui import candidate_card, contact_card, contact_link, escape_md, t

log = logging.getLogger("matching")

DEFAULT_PREFERENCE = "men"


def _with(ids: List[int], user_id: int) -> List[int]:
    return ids if user_id in ids else ids + [user_id]


class MatchingEngine:
    def __init__(self, db, sessions, limiter, queues, notifier, *, resume_delay: float = MATCH_RESUME_DELAY):
        self.db = db
        self.sessions = sessions
        self.limiter = limiter
        self.queues = queues
        self.notifier = notifier
        self.resume_delay = resume_delay

    def _offer(self) -> Reply:
        return purchase_offer(self.limiter.daily_free)

    async def _refill(self, user_id: int, session) -> None:
        session.queue = await self.queues.build(user_id, True)
        if not session.queue:
            session.shown.clear()
            session.queue = await self.queues.build(user_id, True)
        if not session.queue:
            session.queue = await self.queues.build(user_id, False)

    async def present_next(self, user_id: int) -> List[Reply]:
        me = await self.db.find_one(user_id)
        if me is None:
            return [Reply(t("need_profile"))]
        if await self.db.count() <= 1:
            return [Reply(t("nobody_yet"))]
        if (await self.limiter.available(user_id)).total <= 0:
            return [self._offer()]

        session = self.sessions.get_or_create(user_id)
        preference = me.get("looking") or DEFAULT_PREFERENCE
        if session.last_preference != preference:
            session.reset_browsing()
            session.last_preference = preference

        candidate = None
        for _ in range(2):
            if not session.queue:
                await self._refill(user_id, session)
            while session.queue and candidate is None:
                # queue entries are snapshots; the profile may be gone by now
                entry = session.queue.pop(0)
                candidate = await self.db.find_one(entry["user_id"])
                if candidate is None:
                    log.info("[queue] user=%s dropping deleted candidate %s", user_id, entry["user_id"])
            if candidate is not None:
                break
        if candidate is None:
            return [Reply(t("no_new_people"))]

        session.mark_shown(candidate["user_id"])
        return [Reply(candidate_card(candidate), photos=list(candidate.get("photos") or []),
                      markup=kb.kb_swipe(candidate["user_id"]))]

    async def _resume(self, user_id: int, matched: bool) -> List[Reply]:
        replies = await self.present_next(user_id)
        if matched and replies:
            replies[0].delay = self.resume_delay
        return replies

    def _clear_message_step(self, user_id: int) -> None:
        session = self.sessions.get(user_id)
        if session is not None and isinstance(session.step, AwaitingMessage):
            session.step = IDLE

    async def skip(self, user_id: int, target_id: int) -> List[Reply]:
        if await self.db.find_one(user_id, fields=("user_id",)) is None:
            return [Reply(t("need_profile"))]
        if (await self.limiter.available(user_id)).total <= 0:
            return [self._offer()]
        await self.limiter.consume(user_id)
        self._clear_message_step(user_id)
        return await self.present_next(user_id)

    async def _register_like(self, me: Dict[str, Any], target: Dict[str, Any], *, with_message: bool = False) -> bool:
        """Persist the like on both sides and notify the target. Returns True on a match."""
        uid, tid = me["user_id"], target["user_id"]
        await self.db.update_fields(uid, {"likes": _with(me["likes"], tid)})

        if uid in target["likes"]:
            await self.db.update_fields(uid, {"matches": _with(me["matches"], tid)})
            await self.db.update_fields(tid, {"matches": _with(target["matches"], uid)})
            key = "match_notice_message" if with_message else "match_notice"
            self.notifier.notify(tid, [Reply(t(key, name=escape_md(me.get("name") or "User"), contact=contact_link(me)),
                                             markdown=True)])
            log.info("[match] %s <-> %s", uid, tid)
            return True

        recent = [i for i in target["recent_likes"] if i != uid] + [uid]
        await self.db.update_fields(tid, {"recent_likes": recent})
        self.notifier.notify(tid, [Reply(t("someone_liked"))])
        return False

    async def like(self, user_id: int, target_id: int) -> List[Reply]:
        me = await self.db.find_one(user_id)
        if me is None:
            return [Reply(t("need_profile"))]
        target = await self.db.find_one(target_id)
        if target is None:
            return [Reply(t("user_not_found"))] + await self.present_next(user_id)
        if (await self.limiter.available(user_id)).total <= 0:
            return [self._offer()]

        matched = await self._register_like(me, target)
        await self.limiter.consume(user_id)
        self._clear_message_step(user_id)

        session = self.sessions.get_or_create(user_id)
        session.queue = await self.queues.build(user_id, True)
        replies = [Reply(t("you_matched", name=target.get("name") or "user"))] if matched else []
        return replies + await self._resume(user_id, matched)

    async def request_message(self, user_id: int, target_id: int) -> List[Reply]:
        if await self.db.find_one(user_id, fields=("user_id",)) is None:
            return [Reply(t("need_profile"))]
        if (await self.limiter.available(user_id)).total <= 0:
            return [self._offer()]
        target = await self.db.find_one(target_id, fields=("user_id", "name"))
        if target is None:
            return [Reply(t("user_not_found"))] + await self.present_next(user_id)
        self.sessions.get_or_create(user_id).step = AwaitingMessage(target_id)
        return [Reply(t("write_message", name=target.get("name") or "this user"))]

    async def send_message(self, user_id: int, text: str) -> List[Reply]:
        session = self.sessions.get(user_id)
        if session is None or not isinstance(session.step, AwaitingMessage):
            return []
        target_id = session.step.target_id
        session.step = IDLE

        me = await self.db.find_one(user_id)
        if me is None:
            return [Reply(t("need_profile"))]
        target = await self.db.find_one(target_id)
        if target is None:
            return [Reply(t("user_not_found"))] + await self.present_next(user_id)
        if (await self.limiter.available(user_id)).total <= 0:
            return [self._offer()]

        matched = await self._register_like(me, target, with_message=True)
        await self.limiter.consume(user_id)

        sender = me.get("name") or "Someone"
        if me.get("username"):
            sender = f"{sender} (@{me['username']})"
        card = t("message_received", name=escape_md(sender), text=escape_md(text), card=contact_card(me))
        self.notifier.notify(target_id, [Reply(card, photos=list(me.get("photos") or []),
                                               markup=kb.kb_like_back(user_id), markdown=True)])

        session.queue = await self.queues.build(user_id, True)
        name = target.get("name") or "user"
        if matched:
            confirmation = t("message_matched", name=name)
        else:
            confirmation = t("message_sent", name=name)
        if (await self.limiter.available(user_id)).total > 0:
            return [Reply(f"{confirmation}\n\n{t('continuing')}")] + await self._resume(user_id, matched)
        return [Reply(f"{confirmation}\n\n{t('limit_after_message')}")]

    async def report(self, user_id: int, target_id: int) -> List[Reply]:
        me = await self.db.find_one(user_id, fields=("user_id", "name"))
        if me is None:
            return [Reply(t("need_profile"))]
        target = await self.db.find_one(target_id, fields=("user_id", "name"))
        if target is None:
            return [Reply(t("user_not_found_plain"))]
        if await self.db.find_report(user_id, target_id) is not None:
            return [Reply(t("already_reported"))]
        inserted = await self.db.insert_report({
            "reporter_id": user_id, "reporter_name": me.get("name"),
            "reported_id": target_id, "reported_name": target.get("name"),
        })
        if not inserted:
            return [Reply(t("already_reported"))]
        log.info("[report] %s reported %s", user_id, target_id)
        return [Reply(t("report_thanks"))] + await self.present_next(user_id)

    async def _profiles(self, ids: List[int]) -> List[Dict[str, Any]]:
        found = []
        for i in ids:
            profile = await self.db.find_one(i)
            if profile is not None:
                found.append(profile)
        return found

    def _liker_card(self, profile: Dict[str, Any]) -> Reply:
        return Reply(contact_card(profile), photos=list(profile.get("photos") or []),
                     markup=kb.kb_like_back(profile["user_id"]), markdown=True)

    async def list_matches(self, user_id: int) -> List[Reply]:
        """Recent likes (newest first, then cleared), other likers, then the matches list."""
        me = await self.db.find_one(user_id)
        if me is None:
            return [Reply(t("no_profile"))]
        matches = set(me["matches"])

        recent_ids = [i for i in reversed(me["recent_likes"]) if i not in matches]
        recent = await self._profiles(recent_ids)
        seen = matches | set(recent_ids) | {user_id}
        older = [u for u in await self.db.find_all() if user_id in u["likes"] and u["user_id"] not in seen]
        matched = await self._profiles(me["matches"])

        if me["recent_likes"]:
            await self.db.update_fields(user_id, {"recent_likes": []})
        if not (recent or older or matched):
            return [Reply(t("no_matches"))]

        replies: List[Reply] = []
        if recent:
            replies.append(Reply(t("recent_likes_header", count=len(recent))))
            replies += [self._liker_card(p) for p in recent]
        if older:
            replies.append(Reply(t("older_likes_header", count=len(older))))
            replies += [self._liker_card(p) for p in older]
        if matched:
            lines = [f"• {escape_md(p.get('name') or 'Unknown')} ({p.get('age') or '?'}) — {contact_link(p)}" for p in matched]
            replies.append(Reply(t("matches_header", count=len(matched)) + "\n\n" + "\n".join(lines), markdown=True))
        return replies
