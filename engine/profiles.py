# engine/profiles.py
# Profile creation, editing, viewing and deletion dialogues

import logging
from typing import List, Optional

import keyboards as kb
from config import MAX_AGE, MIN_AGE
from engine.replies import Reply
from engine.sessions import IDLE, AwaitingDeletionReason, Creating, Editing
from texts_ui import INTENTIONS, own_profile_card, t

log = logging.getLogger("profiles")

MAX_PHOTOS = 3
MIN_PHOTOS = 2
GENDERS = ("male", "female")
LOOKING = ("men", "women")


class ProfileFlow:
    def __init__(self, db, sessions, matching, *, min_age: int = MIN_AGE, max_age: int = MAX_AGE):
        self.db = db
        self.sessions = sessions
        self.matching = matching
        self.min_age = min_age
        self.max_age = max_age

    def _parse_age(self, text: str) -> Optional[int]:
        text = (text or "").strip()
        # isdigit() also accepts superscripts and other non-ASCII digits
        if not (text.isascii() and text.isdigit()):
            return None
        age = int(text)
        return age if self.min_age <= age <= self.max_age else None

    def _in_step(self, user_id: int, step) -> bool:
        session = self.sessions.get(user_id)
        return session is not None and session.step == step

    async def _has_profile(self, user_id: int) -> bool:
        return await self.db.find_one(user_id, fields=("user_id",)) is not None

    # ---- creation ----

    def begin_create(self, user_id: int, first_name: str, username: Optional[str], *, again: bool = False) -> List[Reply]:
        session = self.sessions.get_or_create(user_id)
        session.reset_draft()
        session.draft.update(first_name=first_name or "", username=username)
        session.step = Creating("name_choice")
        return [Reply(t("create_again" if again else "create_start"), markup=kb.kb_name_choice(first_name))]

    def use_telegram_name(self, user_id: int) -> List[Reply]:
        if not self._in_step(user_id, Creating("name_choice")):
            return []
        session = self.sessions.get(user_id)
        session.draft["name"] = session.draft.get("first_name") or "User"
        session.step = Creating("age")
        return [Reply(t("name_telegram"))]

    def use_custom_name(self, user_id: int) -> List[Reply]:
        if not self._in_step(user_id, Creating("name_choice")):
            return []
        self.sessions.get(user_id).step = Creating("name")
        return [Reply(t("name_custom"))]

    def create_text(self, user_id: int, text: str) -> List[Reply]:
        session = self.sessions.get(user_id)
        if session is None or not isinstance(session.step, Creating):
            return []
        field = session.step.field
        if field == "name":
            session.draft["name"] = text.strip()
            session.step = Creating("age")
            return [Reply(t("name_ok"))]
        if field == "age":
            age = self._parse_age(text)
            if age is None:
                return [Reply(t("age_invalid", min=self.min_age, max=self.max_age))]
            session.draft["age"] = age
            session.step = Creating("gender")
            return [Reply(t("ask_gender"), markup=kb.kb_gender())]
        if field == "bio":
            session.draft["bio"] = text.strip()
            session.step = Creating("photos")
            return [Reply(t("ask_photos"))]
        return []

    def choose_gender(self, user_id: int, gender: str) -> List[Reply]:
        if gender not in GENDERS or not self._in_step(user_id, Creating("gender")):
            return []
        session = self.sessions.get(user_id)
        session.draft["gender"] = gender
        session.step = Creating("looking")
        return [Reply(t("ask_looking"), markup=kb.kb_looking())]

    def choose_looking(self, user_id: int, looking: str) -> List[Reply]:
        if looking not in LOOKING or not self._in_step(user_id, Creating("looking")):
            return []
        session = self.sessions.get(user_id)
        session.draft["looking"] = looking
        session.step = Creating("intention")
        return [Reply(t("ask_intention"), markup=kb.kb_intention())]

    def choose_intention(self, user_id: int, intention: str) -> List[Reply]:
        if intention not in INTENTIONS or not self._in_step(user_id, Creating("intention")):
            return []
        session = self.sessions.get(user_id)
        session.draft["intention"] = intention
        session.step = Creating("bio")
        return [Reply(t("ask_bio"), markup=kb.kb_skip_bio())]

    def skip_bio(self, user_id: int) -> List[Reply]:
        if not self._in_step(user_id, Creating("bio")):
            return []
        session = self.sessions.get(user_id)
        session.draft["bio"] = ""
        session.step = Creating("photos")
        return [Reply(t("ask_photos"))]

    async def add_photo(self, user_id: int, file_id: str) -> List[Reply]:
        if not self._in_step(user_id, Creating("photos")):
            return []
        session = self.sessions.get(user_id)
        session.photos.append(file_id)
        count = len(session.photos)
        if count >= MAX_PHOTOS:
            return await self._finish_create(user_id)
        if count >= MIN_PHOTOS:
            return [Reply(t("photos_choice", count=count), markup=kb.kb_photos_finish(count))]
        return [Reply(t("photo_saved", count=count))]

    def add_more_photo(self, user_id: int) -> List[Reply]:
        if not self._in_step(user_id, Creating("photos")):
            return []
        return [Reply(t("photo_next"))]

    async def finish_photos(self, user_id: int) -> List[Reply]:
        session = self.sessions.get(user_id)
        if session is None or session.step != Creating("photos"):
            return []
        if len(session.photos) < MIN_PHOTOS:
            return [Reply(t("photos_min"))]
        return await self._finish_create(user_id)

    async def _finish_create(self, user_id: int) -> List[Reply]:
        session = self.sessions.get(user_id)
        draft = session.draft
        record = {
            "name": draft.get("name") or draft.get("first_name") or "User",
            "username": draft.get("username"),
            "age": draft.get("age"),
            "gender": draft.get("gender"),
            "looking": draft.get("looking"),
            "intention": draft.get("intention", ""),
            "bio": draft.get("bio", ""),
            "photos": session.photos[:MAX_PHOTOS],
        }
        # re-creating keeps likes, matches and swipe counters
        if await self._has_profile(user_id):
            await self.db.update_fields(user_id, record)
        else:
            await self.db.upsert(user_id, record)
        log.info("[profile] user=%s saved (%d photos)", user_id, len(record["photos"]))

        session.step = IDLE
        session.reset_draft()
        session.reset_browsing()
        session.last_preference = record["looking"]
        return [Reply(t("profile_done"))] + await self.matching.present_next(user_id)

    # ---- view ----

    async def view(self, user_id: int) -> List[Reply]:
        me = await self.db.find_one(user_id)
        if me is None:
            return [Reply(t("no_profile"))]
        return [Reply(own_profile_card(me), photos=list(me.get("photos") or []))]

    # ---- edit ----

    async def edit_menu(self, user_id: int) -> List[Reply]:
        if not await self._has_profile(user_id):
            return [Reply(t("no_profile_edit"))]
        return [Reply(t("edit_menu"), markup=kb.kb_edit_menu())]

    async def _edit_prompt(self, user_id: int, reply: Reply, field: Optional[str] = None) -> List[Reply]:
        if not await self._has_profile(user_id):
            return [Reply(t("no_profile_edit"))]
        if field is not None:
            session = self.sessions.get_or_create(user_id)
            session.step = Editing(field)
            if field == "photos":
                session.photos.clear()
        return [reply]

    async def edit_name(self, user_id: int, first_name: str) -> List[Reply]:
        return await self._edit_prompt(user_id, Reply(t("edit_name_how"), markup=kb.kb_name_choice(first_name, edit=True)))

    async def edit_name_custom(self, user_id: int) -> List[Reply]:
        return await self._edit_prompt(user_id, Reply(t("edit_name_custom")), "name")

    async def edit_age(self, user_id: int) -> List[Reply]:
        return await self._edit_prompt(user_id, Reply(t("edit_age")), "age")

    async def edit_bio(self, user_id: int) -> List[Reply]:
        return await self._edit_prompt(user_id, Reply(t("edit_bio")), "bio")

    async def edit_gender(self, user_id: int) -> List[Reply]:
        return await self._edit_prompt(user_id, Reply(t("edit_gender"), markup=kb.kb_gender(edit=True)))

    async def edit_intention(self, user_id: int) -> List[Reply]:
        return await self._edit_prompt(user_id, Reply(t("ask_intention"), markup=kb.kb_intention(edit=True)))

    async def edit_looking(self, user_id: int) -> List[Reply]:
        return await self._edit_prompt(user_id, Reply(t("ask_looking"), markup=kb.kb_looking(edit=True)))

    async def edit_photos(self, user_id: int) -> List[Reply]:
        return await self._edit_prompt(user_id, Reply(t("edit_photos")), "photos")

    async def _saved(self, user_id: int, fields: dict, confirmation: str) -> List[Reply]:
        if not await self._has_profile(user_id):
            return [Reply(t("no_profile_edit"))]
        await self.db.update_fields(user_id, fields)
        session = self.sessions.get_or_create(user_id)
        session.step = IDLE
        return [Reply(confirmation)] + await self.matching.present_next(user_id)

    async def set_name_telegram(self, user_id: int, first_name: str) -> List[Reply]:
        return await self._saved(user_id, {"name": first_name or "User"}, t("name_updated_telegram"))

    async def set_gender(self, user_id: int, gender: str) -> List[Reply]:
        if gender not in GENDERS:
            return []
        return await self._saved(user_id, {"gender": gender}, t("gender_updated", gender=gender))

    async def set_intention(self, user_id: int, intention: str) -> List[Reply]:
        if intention not in INTENTIONS:
            return []
        return await self._saved(user_id, {"intention": intention}, t("intention_updated", intention=INTENTIONS[intention]))

    async def set_looking(self, user_id: int, looking: str) -> List[Reply]:
        if looking not in LOOKING:
            return []
        if await self._has_profile(user_id):
            session = self.sessions.get_or_create(user_id)
            session.reset_browsing()
            session.last_preference = looking
        return await self._saved(user_id, {"looking": looking}, t("looking_updated", looking=looking))

    async def edit_text(self, user_id: int, text: str) -> List[Reply]:
        session = self.sessions.get(user_id)
        if session is None or not isinstance(session.step, Editing):
            return []
        field = session.step.field
        if field == "name":
            return await self._saved(user_id, {"name": text.strip()}, t("name_updated"))
        if field == "age":
            age = self._parse_age(text)
            if age is None:
                return [Reply(t("age_invalid", min=self.min_age, max=self.max_age))]
            return await self._saved(user_id, {"age": age}, t("age_updated"))
        if field == "bio":
            return await self._saved(user_id, {"bio": text.strip()}, t("bio_updated"))
        return []

    def edit_add_photo(self, user_id: int, file_id: str) -> List[Reply]:
        if not self._in_step(user_id, Editing("photos")):
            return []
        session = self.sessions.get(user_id)
        session.photos.append(file_id)
        del session.photos[:-MAX_PHOTOS]
        count = len(session.photos)
        if count >= MIN_PHOTOS:
            return [Reply(t("edit_photos_choice", count=count), markup=kb.kb_photos_finish(count, edit=True))]
        return [Reply(t("edit_photo_saved", count=count))]

    def add_more_edit_photo(self, user_id: int) -> List[Reply]:
        if not self._in_step(user_id, Editing("photos")):
            return []
        return [Reply(t("photo_next"))]

    async def finish_edit_photos(self, user_id: int) -> List[Reply]:
        session = self.sessions.get(user_id)
        if session is None or session.step != Editing("photos"):
            return []
        if len(session.photos) < MIN_PHOTOS:
            return [Reply(t("photos_min"))]
        photos = list(session.photos)
        session.photos.clear()
        return await self._saved(user_id, {"photos": photos}, t("photos_updated", count=len(photos)))

    async def edit_all(self, user_id: int, first_name: str, username: Optional[str]) -> List[Reply]:
        if not await self._has_profile(user_id):
            return [Reply(t("no_profile_edit"))]
        return self.begin_create(user_id, first_name, username, again=True)

    # ---- deletion ----

    async def request_delete(self, user_id: int) -> List[Reply]:
        if not await self._has_profile(user_id):
            return [Reply(t("no_profile_delete"))]
        self.sessions.get_or_create(user_id).step = AwaitingDeletionReason()
        return [Reply(t("delete_reason"))]

    async def delete_with_reason(self, user_id: int, reason: str, username: Optional[str] = None) -> List[Reply]:
        me = await self.db.find_one(user_id, fields=("user_id", "name", "username"))
        if me is None:
            self.sessions.discard(user_id)
            return [Reply(t("no_profile_delete"))]
        await self.db.insert_deletion_reason({
            "user_id": user_id, "name": me.get("name"),
            "username": me.get("username") or username, "reason": reason.strip(),
        })
        await self._purge(user_id)
        await self.db.delete(user_id)
        self.sessions.discard(user_id)
        log.info("[profile] user=%s deleted", user_id)
        return [Reply(t("deleted"))]

    async def _purge(self, user_id: int) -> None:
        """Drop user_id from every other profile's likes, matches and recent likes."""
        others = [u for u in await self.db.find_all() if u["user_id"] != user_id]
        for field in ("likes", "matches", "recent_likes"):
            for other in others:
                if user_id in other[field]:
                    await self.db.update_fields(other["user_id"], {field: [i for i in other[field] if i != user_id]})
