# User-facing texts (English) and profile card formatting
import re
from typing import Any, Dict

INTENTIONS = {
    "serious": "Serious relationship",
    "casual": "Casual dating",
    "friendship": "Friendship only",
    "exploring": "Just exploring 😏",
}

T = {
    "welcome": (
        "Hey 😏\n\n"
        "Use /create to make your profile ❤️\n"
        "Use /profile to view your profile 👀\n"
        "Use /edit to update your profile ✏️\n"
        "Use /match to start finding people!\n"
        "Use /help to see how we protect users for safe interaction 😎\n"
        "Use /delete (or /delet) to remove your profile 🗑️"
    ),
    "help": (
        "🛡️ How We Protect Users for Safe Interaction 😎\n\n"
        "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━\n\n"
        "1️⃣ *Privacy Protection* 👀\n"
        "When someone likes you, you have the opportunity to see who they are BEFORE you like them back.\n"
        "They will NOT see your username unless you click \"❤️ Like Back\".\n"
        "This gives you full control over who can contact you.\n\n"
        "2️⃣ *Report Inappropriate Users* 🚫\n"
        "If a user seems inappropriate or makes you uncomfortable, you can click the \"🚫 Report\" button "
        "BEFORE clicking \"Like Back\".\n"
        "We will review the report and ban the user if necessary.\n"
        "Your safety is our priority! ❤️\n\n"
        "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━\n\n"
        "Stay safe and have fun! 😊"
    ),
    "error": "⚠️ Sorry, something went wrong. Please try again in a moment.",

    # profile required
    "need_profile": "❗ Create a profile first: /create",
    "no_profile": "You don't have a profile yet.\nUse /create to make one.",
    "no_profile_edit": "You don't have a profile yet. Use /create first.",
    "no_profile_delete": "You don't have a profile to delete.",

    # creation
    "create_start": "Okay, let's create your profile.\n\nFirst, what name do you want to use?",
    "create_again": "Okay, let's refresh your whole profile.\n\nFirst, what name do you want to use?",
    "name_telegram": "Great, I'll use your Telegram name.\n\nHow old are you? (e.g. 24)",
    "name_custom": "Send me the name you want to use.",
    "name_ok": "Nice, got it.\n\nHow old are you? (e.g. 24)",
    "age_invalid": "Please enter a valid number for your age ({min}-{max}).",
    "ask_gender": "⚧ What's your gender?",
    "ask_looking": "❤️ Who are you looking for?",
    "ask_intention": "💘 What are you looking for on MatchUps?",
    "ask_bio": "📝 Now tell me a short bio about yourself (or click Skip to skip this step).",
    "ask_photos": (
        "📸 Perfect! Now send me your profile photos.\n\n"
        "You can upload 2-3 photos. Send them one by one, and I'll let you know when you've reached the limit."
    ),
    "photo_saved": "📸 Photo {count} saved! Send another photo (minimum 2 photos required, up to 3 total).",
    "photos_choice": "📸 Great! You've uploaded {count} photo(s).\n\nYou can add one more (up to 3 total) or finish now.",
    "photo_next": "📸 Send your next photo (minimum 2 photos required, up to 3 total).",
    "photos_min": "Please upload at least 2 photos",
    "profile_done": "🔥 All photos saved! Your profile is now complete ❤️\n\nUse /match to start swiping, or /profile to view your new profile.",

    # edit
    "edit_menu": "What would you like to edit? ✏️",
    "edit_name_how": "How do you want to set your name?",
    "edit_name_custom": "Send me the new name you want to use.",
    "edit_age": "Please send your new age (number).",
    "edit_bio": "Send me your new bio.",
    "edit_gender": "Select your gender:",
    "edit_photos": "📸 Send me your new profile photos.\n\nYou can upload 2-3 photos. Send them one by one.",
    "edit_photo_saved": "📸 Photo {count} updated! Send another photo (minimum 2 photos required, up to 3 total).",
    "edit_photos_choice": "📸 You now have {count} photo(s). Add one more or finish?",
    "name_updated": "👤 Your name has been updated.",
    "name_updated_telegram": "👤 Your name has been updated to your Telegram name.",
    "age_updated": "🎂 Your age has been updated.",
    "bio_updated": "📝 Your bio has been updated.",
    "gender_updated": "⚧ Your gender is now set to {gender}.",
    "intention_updated": "💘 Your intention has been updated to: {intention}",
    "looking_updated": "❤️ You are now looking for {looking}.",
    "photos_updated": "📸 Your {count} profile photo(s) have been updated!",

    # browsing
    "nobody_yet": "😢 No other people in the system yet. Share the bot with friends!",
    "no_new_people": "😢 No new people found right now… check back later!",
    "user_not_found": "❌ User not found. Continuing with matches...",
    "user_not_found_plain": "❌ User not found.",
    "nice_profile": "🔥 Looks like a nice profile! Ready to make a move?",
    "photos_unavailable": "(⚠️ Photos Unavailable)\n",
    "limit_reached": (
        "⏸️ Daily Swipe Limit Reached!\n\n"
        "You've used all {daily} free swipes today. 🎯\n\n"
        "Get more swipes to continue matching:\n\n"
        "{packages}\n\n"
        "Your daily swipes reset tomorrow! 🌅"
    ),

    # likes / matches
    "you_matched": "🔥 You MATCHED with {name}!\nUse /matches to see list.",
    "match_notice": "🎉❤️ IT'S A MATCH!\n\n{name} liked you back!\n\nSend them a message: {contact}",
    "match_notice_message": "🎉❤️ IT'S A MATCH!\n\n{name} liked you back and sent you a message!\n\nSend them a message: {contact}",
    "someone_liked": "❤️ Someone liked you!\n\nSee who it is: /matches",
    "recent_likes_header": "🔥 {count} recent like(s) (newest first):",
    "older_likes_header": "❤️ {count} other person(s) liked you:",
    "matches_header": "💘 Your Matches ({count}):",
    "no_matches": "😢 No matches or likes yet. Keep swiping!",

    # messages
    "write_message": "💌 Write a message for {name}:\n\n(You can send a message now, or continue browsing by clicking Skip/Like)",
    "message_received": "💌 You received a message from {name}:\n\n\"{text}\"\n\n━━━━━━━━━━━━━━━━\n\n{card}",
    "message_sent": "✅ Message sent to {name}!",
    "message_matched": "🔥 You MATCHED with {name}!\n✅ Message sent!\n\nUse /matches to see list.",
    "continuing": "Continuing with matches...",
    "limit_after_message": "⏸️ You've reached your daily swipe limit. Purchase more swipes to continue matching!",

    # reports
    "report_thanks": "✅ Thank you for reporting. We'll review this user.\n\nContinuing with matches...",
    "already_reported": "ℹ️ You have already reported this user.",

    # deletion
    "delete_reason": (
        "Before we delete your account, could you please tell us why you're leaving? "
        "This helps us improve the bot. Just send your reason as a message."
    ),
    "deleted": (
        "Your account is deleted now. Hope you met someone with my help!\n\n"
        "Always happy to chat. If bored, text me /start - I'll find someone special for you."
    ),

    # payments
    "creating_link": "Creating payment link...",
    "purchase": "💳 Purchase {title}\n\nYou'll get {swipes} swipes for {stars} ⭐\n\nClick the button below to complete your purchase:",
    "purchase_error": "Error creating payment. Please try again.",
    "purchase_cancelled": "Purchase cancelled. Use /match to continue swiping when you're ready!",
    "payment_no_profile": "❌ User profile not found. Please create a profile first: /create",
    "payment_credit_failed": "⚠️ Payment received but there was an error crediting your account. Please contact support.",
    "payment_ok": (
        "✅ Payment Successful! 🎉\n\n"
        "You've received {swipes} swipes!\n\n"
        "📊 Your Swipe Status:\n"
        "• Free swipes remaining today: {free}/{daily}\n"
        "• Purchased swipes: {purchased}\n"
        "• Total available: {total}\n\n"
        "Use /match to continue swiping! 🚀"
    ),
}


def t(key: str, **kw: Any) -> str:
    text = T.get(key, key)
    return text.format(**kw) if kw else text


_MD_SPECIAL = re.compile(r"([_*`\[])")


def escape_md(text: Any) -> str:
    """Escape user content for Telegram's legacy Markdown parse mode."""
    return _MD_SPECIAL.sub(r"\\\1", str(text or ""))


def intention_label(code: str) -> str:
    return INTENTIONS.get(code or "", "")


def gender_label(gender: str) -> str:
    return "♂️ Male" if gender == "male" else "♀️ Female"


def contact_link(profile: Dict[str, Any]) -> str:
    """@username when known, otherwise a Markdown tg:// mention."""
    if profile.get("username"):
        return f"@{escape_md(profile['username'])}"
    # brackets cannot be escaped inside a legacy Markdown link label
    label = (profile.get("name") or "User").replace("[", "(").replace("]", ")")
    return f"[{escape_md(label)}](tg://user?id={profile['user_id']})"


def candidate_card(profile: Dict[str, Any]) -> str:
    intention = intention_label(profile.get("intention"))
    return (
        f"👤 {profile.get('name') or 'Unknown'}, {profile.get('age') or '?'}\n\n"
        + (f"💘 {intention}\n\n" if intention else "")
        + f"📝 {profile.get('bio') or 'No bio'}"
    )


def contact_card(profile: Dict[str, Any]) -> str:
    """Markdown card with gender and contact, shown to people who were liked or messaged."""
    intention = intention_label(profile.get("intention"))
    return (
        f"👤 {escape_md(profile.get('name') or 'Unknown')}, {profile.get('age') or '?'}\n\n"
        f"⚧️ {gender_label(profile.get('gender'))}\n\n"
        + (f"💘 {escape_md(intention)}\n\n" if intention else "")
        + f"📝 {escape_md(profile.get('bio') or 'No bio')}\n\n"
        f"💬 {contact_link(profile)}"
    )


def own_profile_card(profile: Dict[str, Any]) -> str:
    intention = intention_label(profile.get("intention")) or "Not set"
    looking = {"men": "Men", "women": "Women"}.get(profile.get("looking"), "Not set")
    return (
        f"👤 {profile.get('name') or 'Unknown'}, {profile.get('age') or '?'}\n"
        f"⚧️ {gender_label(profile.get('gender'))}\n"
        f"❤️ Looking for: {looking}\n"
        f"💘 {intention}\n\n"
        f"📝 {profile.get('bio') or 'No bio'}"
    )
