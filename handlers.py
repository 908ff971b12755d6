# handlers.py: aiogram router: one handler per command / button, all logic lives in engine/
import logging

from aiogram import Bot, F, Router, types
from aiogram.exceptions import TelegramForbiddenError
from aiogram.filters import Command, CommandStart
from aiogram.types import PreCheckoutQuery
from aiogram.types.error_event import ErrorEvent

from delivery import deliver
from engine.dialogue import Dialogue
from engine.matching import MatchingEngine
from engine.payments import PACKAGES, Payments, invoice_params, precheck_error
from engine.profiles import ProfileFlow
from engine.replies import Reply
from texts_ui import t

router = Router(name="matchups")

# Engine components arrive as dispatcher workflow data:
#   Dispatcher(matching=..., profiles=..., dialogue=..., payments=...)


def _target(callback: types.CallbackQuery) -> int:
    return int(callback.data.rsplit("_", 1)[1])


def _last(callback: types.CallbackQuery) -> str:
    return callback.data.rsplit("_", 1)[1]


async def _reply(bot: Bot, chat_id: int, replies):
    if replies:
        await deliver(bot, chat_id, replies)


# ===================== COMMANDS =====================
@router.message(CommandStart())
async def cmd_start(message: types.Message, bot: Bot):
    await _reply(bot, message.chat.id, [Reply(t("welcome"))])


@router.message(Command("help"))
async def cmd_help(message: types.Message, bot: Bot):
    await _reply(bot, message.chat.id, [Reply(t("help"), markdown=True)])


@router.message(Command("create"))
async def cmd_create(message: types.Message, bot: Bot, profiles: ProfileFlow):
    user = message.from_user
    await _reply(bot, message.chat.id, profiles.begin_create(user.id, user.first_name, user.username))


@router.message(Command("profile"))
async def cmd_profile(message: types.Message, bot: Bot, profiles: ProfileFlow):
    await _reply(bot, message.chat.id, await profiles.view(message.from_user.id))


@router.message(Command("edit"))
async def cmd_edit(message: types.Message, bot: Bot, profiles: ProfileFlow):
    await _reply(bot, message.chat.id, await profiles.edit_menu(message.from_user.id))


@router.message(Command("match"))
async def cmd_match(message: types.Message, bot: Bot, matching: MatchingEngine):
    await _reply(bot, message.chat.id, await matching.present_next(message.from_user.id))


@router.message(Command("matches"))
async def cmd_matches(message: types.Message, bot: Bot, matching: MatchingEngine):
    await _reply(bot, message.chat.id, await matching.list_matches(message.from_user.id))


@router.message(Command("delete", "delet"))
async def cmd_delete(message: types.Message, bot: Bot, profiles: ProfileFlow):
    await _reply(bot, message.chat.id, await profiles.request_delete(message.from_user.id))


# ===================== CREATION BUTTONS =====================
@router.callback_query(F.data == "create_name_telegram")
async def create_name_telegram(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, profiles.use_telegram_name(callback.from_user.id))


@router.callback_query(F.data == "create_name_custom_start")
async def create_name_custom(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, profiles.use_custom_name(callback.from_user.id))


@router.callback_query(F.data.regexp(r"^gender_(male|female)$"))
async def create_gender(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, profiles.choose_gender(callback.from_user.id, callback.data.split("_", 1)[1]))


@router.callback_query(F.data.regexp(r"^look_(men|women)$"))
async def create_looking(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, profiles.choose_looking(callback.from_user.id, callback.data.split("_", 1)[1]))


@router.callback_query(F.data.regexp(r"^intention_(serious|casual|friendship|exploring)$"))
async def create_intention(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, profiles.choose_intention(callback.from_user.id, callback.data.split("_", 1)[1]))


@router.callback_query(F.data == "skip_bio")
async def create_skip_bio(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, profiles.skip_bio(callback.from_user.id))


@router.callback_query(F.data == "finish_photos")
async def create_finish_photos(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.finish_photos(callback.from_user.id))


@router.callback_query(F.data == "add_more_photo")
async def create_more_photo(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, profiles.add_more_photo(callback.from_user.id))


# ===================== EDIT BUTTONS =====================
@router.callback_query(F.data == "edit_name")
async def edit_name(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.edit_name(callback.from_user.id, callback.from_user.first_name))


@router.callback_query(F.data == "edit_name_telegram")
async def edit_name_telegram(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    user = callback.from_user
    await _reply(bot, user.id, await profiles.set_name_telegram(user.id, user.first_name))


@router.callback_query(F.data == "edit_name_custom_start")
async def edit_name_custom(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.edit_name_custom(callback.from_user.id))


@router.callback_query(F.data == "edit_age")
async def edit_age(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.edit_age(callback.from_user.id))


@router.callback_query(F.data == "edit_bio")
async def edit_bio(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.edit_bio(callback.from_user.id))


@router.callback_query(F.data == "edit_gender")
async def edit_gender(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.edit_gender(callback.from_user.id))


@router.callback_query(F.data.regexp(r"^edit_gender_(male|female)$"))
async def edit_gender_set(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.set_gender(callback.from_user.id, _last(callback)))


@router.callback_query(F.data == "edit_intention")
async def edit_intention(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.edit_intention(callback.from_user.id))


@router.callback_query(F.data.regexp(r"^edit_intention_(serious|casual|friendship|exploring)$"))
async def edit_intention_set(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.set_intention(callback.from_user.id, _last(callback)))


@router.callback_query(F.data == "edit_looking")
async def edit_looking(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.edit_looking(callback.from_user.id))


@router.callback_query(F.data.regexp(r"^edit_look_(men|women)$"))
async def edit_looking_set(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.set_looking(callback.from_user.id, _last(callback)))


@router.callback_query(F.data == "edit_photo")
async def edit_photo(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.edit_photos(callback.from_user.id))


@router.callback_query(F.data == "finish_edit_photos")
async def edit_finish_photos(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await profiles.finish_edit_photos(callback.from_user.id))


@router.callback_query(F.data == "add_more_edit_photo")
async def edit_more_photo(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    await _reply(bot, callback.from_user.id, profiles.add_more_edit_photo(callback.from_user.id))


@router.callback_query(F.data == "edit_all_start")
async def edit_all(callback: types.CallbackQuery, bot: Bot, profiles: ProfileFlow):
    await callback.answer()
    user = callback.from_user
    await _reply(bot, user.id, await profiles.edit_all(user.id, user.first_name, user.username))


# ===================== SWIPES =====================
@router.callback_query(F.data.regexp(r"^skip_\d+$"))
async def swipe_skip(callback: types.CallbackQuery, bot: Bot, matching: MatchingEngine):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await matching.skip(callback.from_user.id, _target(callback)))


@router.callback_query(F.data.regexp(r"^like_\d+$"))
async def swipe_like(callback: types.CallbackQuery, bot: Bot, matching: MatchingEngine):
    await callback.answer("❤️ Liked!")
    await _reply(bot, callback.from_user.id, await matching.like(callback.from_user.id, _target(callback)))


@router.callback_query(F.data.regexp(r"^message_\d+$"))
async def swipe_message(callback: types.CallbackQuery, bot: Bot, matching: MatchingEngine):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await matching.request_message(callback.from_user.id, _target(callback)))


@router.callback_query(F.data.regexp(r"^report_\d+$"))
async def swipe_report(callback: types.CallbackQuery, bot: Bot, matching: MatchingEngine):
    await callback.answer()
    await _reply(bot, callback.from_user.id, await matching.report(callback.from_user.id, _target(callback)))


# ===================== PAYMENTS =====================
@router.callback_query(F.data.startswith("buy_swipes_"))
async def buy_swipes(callback: types.CallbackQuery, bot: Bot, payments: Payments):
    package = PACKAGES.get(callback.data[len("buy_swipes_"):])
    if package is None:
        await callback.answer(t("purchase_error"), show_alert=True)
        return
    await callback.answer(t("creating_link"))
    try:
        link = await bot.create_invoice_link(**invoice_params(package, callback.from_user.id))
    except Exception:
        logging.exception("invoice error")
        await _reply(bot, callback.from_user.id, [Reply(t("purchase_error"))])
        return
    await _reply(bot, callback.from_user.id, payments.purchase_prompt(package, link))


@router.callback_query(F.data == "cancel_purchase")
async def cancel_purchase(callback: types.CallbackQuery, bot: Bot, payments: Payments):
    await callback.answer()
    await _reply(bot, callback.from_user.id, payments.cancel())


@router.pre_checkout_query()
async def pre_checkout(query: PreCheckoutQuery):
    error = precheck_error(query.invoice_payload)
    if error:
        logging.warning("pre_checkout declined for user=%s: %s", query.from_user.id, error)
    await query.answer(ok=error is None, error_message=error)


@router.message(F.successful_payment)
async def payment_success(message: types.Message, bot: Bot, payments: Payments):
    replies = await payments.credit(message.from_user.id, message.successful_payment.invoice_payload)
    await _reply(bot, message.chat.id, replies)


# ===================== FREE INPUT =====================
@router.message(F.photo)
async def on_photo(message: types.Message, bot: Bot, dialogue: Dialogue):
    await _reply(bot, message.chat.id, await dialogue.on_photo(message.from_user.id, message.photo[-1].file_id))


@router.message(F.text)
async def on_text(message: types.Message, bot: Bot, dialogue: Dialogue):
    user = message.from_user
    await _reply(bot, message.chat.id, await dialogue.on_text(user.id, message.text, username=user.username))


# ===================== ERRORS =====================
@router.error()
async def on_error(event: ErrorEvent, bot: Bot):
    exc = event.exception
    upd = event.update
    uid = None
    if upd.message is not None:
        uid = upd.message.chat.id
    elif upd.callback_query is not None:
        uid = upd.callback_query.from_user.id
    if isinstance(exc, TelegramForbiddenError):
        logging.warning("[forbidden] user=%s blocked bot, ignoring", uid)
        return True
    logging.error("[aiogram-error] update=%s user=%s", upd.update_id, uid, exc_info=exc)
    if uid is not None:
        try:
            await bot.send_message(uid, t("error"))
        except Exception:
            logging.exception("could not report error to user=%s", uid)
    return True
