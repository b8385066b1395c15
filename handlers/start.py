from aiogram import F, Router, types
from aiogram.filters import Command, CommandStart

from constants.messages import Messages
from core.config import settings
from core.exceptions import ValidationError
from core.logger import logger
from handlers.common import get_start_test_keyboard, get_welcome_keyboard
from services.quiz_service import QuizService
from utils.formatting import format_stats_message

router = Router()
# Only handle private chats
router.message.filter(F.chat.type == "private")


@router.message(CommandStart())
async def cmd_start(message: types.Message, quiz_service: QuizService):
    telegram_id = message.from_user.id
    try:
        outcome = await quiz_service.start(telegram_id, message.from_user.username)
        if outcome.resumed:
            await message.answer(Messages.get("TEST_IN_PROGRESS"))
            return

        await message.answer(quiz_service.config.bot.welcome, reply_markup=get_welcome_keyboard())
    except Exception as e:
        logger.error("Error in /start", user_id=telegram_id, error=str(e))
        await message.answer(Messages.get("ERROR"))


@router.message(Command("restart"))
async def cmd_restart(message: types.Message, quiz_service: QuizService):
    telegram_id = message.from_user.id
    try:
        await quiz_service.restart(telegram_id, message.from_user.username)
        await message.answer(quiz_service.config.bot.restart, reply_markup=get_start_test_keyboard())
    except Exception as e:
        logger.error("Error in /restart", user_id=telegram_id, error=str(e))
        await message.answer(Messages.get("ERROR"))


@router.message(Command("cancel"))
async def cmd_cancel(message: types.Message, quiz_service: QuizService):
    telegram_id = message.from_user.id
    try:
        await quiz_service.cancel(telegram_id)
        await message.answer(quiz_service.config.bot.cancel)
    except Exception as e:
        logger.error("Error in /cancel", user_id=telegram_id, error=str(e))
        await message.answer(Messages.get("CANCEL_ERROR"))


@router.message(Command("help"))
async def cmd_help(message: types.Message, quiz_service: QuizService):
    total = quiz_service.config.test.total_questions
    await message.answer(Messages.get("HELP").format(total=total), parse_mode="HTML")


@router.message(Command("stats"), F.from_user.id == settings.ADMIN_ID)
async def cmd_stats(message: types.Message, quiz_service: QuizService):
    try:
        await message.answer(format_stats_message(quiz_service.stats()), parse_mode="HTML")
    except Exception as e:
        logger.error("Error in /stats", error=str(e))
        await message.answer(Messages.get("STATS_ERROR"))


@router.message(Command("reload"), F.from_user.id == settings.ADMIN_ID)
async def cmd_reload(message: types.Message, quiz_service: QuizService):
    try:
        count = quiz_service.questions.reload()
    except ValidationError as e:
        logger.error("Question reload failed", error=str(e), question_id=e.question_id, field=e.field)
        await message.answer(Messages.get("RELOAD_FAILED").format(error=str(e)))
        return
    await message.answer(Messages.get("RELOAD_OK").format(count=count))
