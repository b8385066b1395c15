from aiogram import Bot, F, Router, types
from aiogram.exceptions import TelegramBadRequest

from constants.messages import Messages
from core.exceptions import NoActiveTestError, SessionNotFoundError
from core.logger import logger
from handlers.common import (
    ANSWER_PREFIX,
    SHOW_INSTRUCTIONS,
    START_TEST,
    get_answer_keyboard,
    get_start_test_keyboard,
    parse_answer_callback,
)
from services.quiz_service import QuizService
from utils.formatting import format_question, format_result_message

router = Router()
router.message.filter(F.chat.type == "private")


async def _delete_quietly(message: types.Message):
    try:
        await message.delete()
    except TelegramBadRequest:
        # Message might already be deleted
        pass


async def send_question(bot: Bot, chat_id: int, payload):
    await bot.send_message(
        chat_id,
        format_question(payload),
        reply_markup=get_answer_keyboard(payload),
        parse_mode="HTML",
    )


@router.callback_query(F.data == START_TEST)
async def start_test_callback(callback: types.CallbackQuery, bot: Bot, quiz_service: QuizService):
    telegram_id = callback.from_user.id
    chat_id = callback.message.chat.id
    await callback.answer()

    try:
        payload = await quiz_service.begin_test(telegram_id)
    except SessionNotFoundError:
        await bot.send_message(chat_id, Messages.get("SESSION_EXPIRED"))
        return
    except NoActiveTestError:
        await bot.send_message(chat_id, Messages.get("NO_QUESTIONS"))
        return

    await _delete_quietly(callback.message)
    await bot.send_message(chat_id, quiz_service.config.bot.instructions)
    await send_question(bot, chat_id, payload)


@router.callback_query(F.data == SHOW_INSTRUCTIONS)
async def show_instructions_callback(callback: types.CallbackQuery, quiz_service: QuizService):
    await callback.answer()
    await callback.message.answer(quiz_service.config.bot.instructions, reply_markup=get_start_test_keyboard())


@router.callback_query(F.data.startswith(ANSWER_PREFIX))
async def answer_callback(callback: types.CallbackQuery, bot: Bot, quiz_service: QuizService):
    telegram_id = callback.from_user.id
    chat_id = callback.message.chat.id

    parsed = parse_answer_callback(callback.data)
    if parsed is None:
        await callback.answer(Messages.get("INVALID_ANSWER"))
        return
    question_id, selected_index = parsed

    try:
        outcome = await quiz_service.answer(telegram_id, question_id, selected_index)
    except SessionNotFoundError:
        await callback.answer()
        await bot.send_message(chat_id, Messages.get("SESSION_EXPIRED"))
        return
    except NoActiveTestError:
        await callback.answer()
        await bot.send_message(chat_id, Messages.get("NO_ACTIVE_TEST"))
        return
    except Exception as e:
        logger.error("Error handling answer", user_id=telegram_id, question_id=question_id, error=str(e))
        await callback.answer()
        await bot.send_message(chat_id, Messages.get("ERROR"))
        return

    if not outcome.accepted:
        await callback.answer(Messages.get("ALREADY_ANSWERED"))
        return

    await callback.answer()
    await _delete_quietly(callback.message)

    if outcome.feedback.is_correct:
        await bot.send_message(chat_id, Messages.get("CORRECT"))
    else:
        await bot.send_message(chat_id, Messages.get("INCORRECT").format(answer=outcome.feedback.correct_option))

    if not outcome.finished:
        await send_question(bot, chat_id, outcome.next_question)
        return

    await bot.send_message(chat_id, quiz_service.config.bot.completion)
    await bot.send_message(chat_id, format_result_message(outcome.assessment), parse_mode="HTML")
    await bot.send_message(chat_id, Messages.get("TAKE_AGAIN"), reply_markup=get_start_test_keyboard(again=True))


@router.message(F.text & ~F.text.startswith("/"))
async def handle_text(message: types.Message, quiz_service: QuizService):
    if await quiz_service.has_active_test(message.from_user.id):
        await message.answer(Messages.get("SELECT_ANSWER"))
    else:
        await message.answer(Messages.get("GREETING"))
