from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from texts_ui import INTENTIONS


def _kb(rows):
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=text, callback_data=data) for text, data in row] for row in rows
    ])


def kb_swipe(target_id: int):
    return _kb([
        [("❌ Skip", f"skip_{target_id}"), ("❤️ Like", f"like_{target_id}")],
        [("💌 Write a message", f"message_{target_id}")],
    ])


def kb_like_back(target_id: int):
    return _kb([
        [("❌ Skip", f"skip_{target_id}"), ("❤️ Like Back", f"like_{target_id}")],
        [("🚫 Report", f"report_{target_id}")],
    ])


def kb_purchase(packages):
    return _kb([
        [(f"{p.swipes} Swipes - {p.stars} ⭐", f"buy_swipes_{p.tier}") for p in packages],
        [("❌ Cancel", "cancel_purchase")],
    ])


def kb_pay(url: str, stars: int):
    return InlineKeyboardMarkup(inline_keyboard=[[InlineKeyboardButton(text=f"Pay {stars} ⭐", url=url)]])


def kb_name_choice(first_name: str, edit=False):
    prefix = "edit_name" if edit else "create_name"
    return _kb([
        [(f"Use Telegram name ({first_name or 'your Telegram name'})", f"{prefix}_telegram")],
        [("Set custom name", f"{prefix}_custom_start")],
    ])


def kb_gender(edit=False):
    prefix = "edit_gender_" if edit else "gender_"
    return _kb([[("♂️ Male", prefix + "male")], [("♀️ Female", prefix + "female")]])


def kb_looking(edit=False):
    prefix = "edit_look_" if edit else "look_"
    return _kb([[("♂️ Men", prefix + "men")], [("♀️ Women", prefix + "women")]])


def kb_intention(edit=False):
    prefix = "edit_intention_" if edit else "intention_"
    return _kb([[(f"🔘 {label}", prefix + code)] for code, label in INTENTIONS.items()])


def kb_skip_bio():
    return _kb([[("⏭️ Skip Bio", "skip_bio")]])


def kb_photos_finish(count: int, edit=False):
    if edit:
        return _kb([
            [("✅ Finish updating photos", "finish_edit_photos")],
            [("📸 Add one more (up to 3)", "add_more_edit_photo")],
        ])
    return _kb([
        [(f"✅ Finish with {count} photos", "finish_photos")],
        [("📸 Add one more photo (3 total)", "add_more_photo")],
    ])


def kb_edit_menu():
    return _kb([
        [("👤 Name", "edit_name"), ("🎂 Age", "edit_age")],
        [("📝 Bio", "edit_bio"), ("⚧ Gender", "edit_gender")],
        [("💘 What I'm looking for", "edit_intention"), ("❤️ Looking for", "edit_looking")],
        [("📸 Photo", "edit_photo")],
        [("✨ Edit everything", "edit_all_start")],
    ])
