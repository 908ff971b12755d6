# engine/payments.py
# Telegram Stars swipe packages: invoice parameters, payload checks, crediting

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from aiogram.types import LabeledPrice

import keyboards as kb
from config import DAILY_FREE_SWIPES
from engine.replies import Reply
from texts_ui import t

log = logging.getLogger("payments")

CURRENCY = "XTR"  # Telegram Stars, no provider token


@dataclass(frozen=True)
class SwipePackage:
    tier: str
    swipes: int
    stars: int

    @property
    def title(self) -> str:
        return f"{self.swipes} Swipes"


PACKAGES: Dict[str, SwipePackage] = {
    "40": SwipePackage("40", 40, 4),
    "80": SwipePackage("80", 80, 10),
}


def make_payload(package: SwipePackage, user_id: int, now_ms: Optional[int] = None) -> str:
    return f"swipes_{package.tier}_{user_id}_{now_ms if now_ms is not None else int(time.time() * 1000)}"


def precheck_error(payload: str) -> Optional[str]:
    """Reason to decline a pre-checkout query, or None when the payload is acceptable."""
    if not (payload or "").startswith("swipes_"):
        return "Invalid payment payload"
    parts = payload.split("_")
    if len(parts) < 3:
        return "Invalid payment format"
    if parts[1] not in PACKAGES:
        return "Unknown swipe package"
    return None


def parse_payload(payload: str) -> Optional[SwipePackage]:
    parts = (payload or "").split("_")
    if len(parts) < 3 or parts[0] != "swipes":
        return None
    return PACKAGES.get(parts[1])


def invoice_params(package: SwipePackage, user_id: int) -> Dict[str, Any]:
    """Keyword arguments for Bot.create_invoice_link."""
    return {
        "title": package.title,
        "description": f"Get {package.swipes} extra swipes to keep matching",
        "payload": make_payload(package, user_id),
        "provider_token": "",
        "currency": CURRENCY,
        "prices": [LabeledPrice(label=package.title, amount=package.stars)],
    }


def purchase_offer(daily: int = DAILY_FREE_SWIPES) -> Reply:
    packages = "\n".join(f"• {p.swipes} Swipes - {p.stars} ⭐" for p in PACKAGES.values())
    return Reply(t("limit_reached", daily=daily, packages=packages), markup=kb.kb_purchase(PACKAGES.values()))


class Payments:
    def __init__(self, db, limiter, sessions, matching):
        self.db = db
        self.limiter = limiter
        self.sessions = sessions
        self.matching = matching

    def purchase_prompt(self, package: SwipePackage, invoice_link: str) -> List[Reply]:
        return [Reply(
            t("purchase", title=package.title, swipes=package.swipes, stars=package.stars),
            markup=kb.kb_pay(invoice_link, package.stars),
        )]

    def cancel(self) -> List[Reply]:
        return [Reply(t("purchase_cancelled"))]

    async def credit(self, user_id: int, payload: str) -> List[Reply]:
        package = parse_payload(payload)
        if package is None:
            log.error("[payments] invalid payload from user=%s: %r", user_id, payload)
            return []
        if await self.db.find_one(user_id, fields=("user_id",)) is None:
            return [Reply(t("payment_no_profile"))]
        purchased = await self.db.atomic_increment(user_id, "purchased_swipes", package.swipes)
        if purchased is None:
            return [Reply(t("payment_credit_failed"))]
        log.info("[payments] user=%s +%d swipes (purchased=%d)", user_id, package.swipes, purchased)

        allowance = await self.limiter.available(user_id)
        replies = [Reply(t(
            "payment_ok", swipes=package.swipes, free=allowance.free, daily=self.limiter.daily_free,
            purchased=allowance.purchased, total=allowance.total,
        ))]
        session = self.sessions.get(user_id)
        if session is not None and session.queue:
            replies += await self.matching.present_next(user_id)
        return replies
