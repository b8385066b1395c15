import asyncio
import sys
from zoneinfo import ZoneInfo

from aiogram import Bot, Dispatcher
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from core.config import load_quiz_config, settings
from core.exceptions import ValidationError
from core.logger import logger, setup_logging
from handlers import quiz, start
from services.assessment_service import AssessmentService
from services.monitoring_service import MonitoringService
from services.question_service import QuestionService
from services.quiz_service import QuizService
from services.selection_service import SelectionService
from services.session_service import SessionStore
from utils.middleware import ServicesMiddleware


def build_monitoring(main_bot: Bot) -> MonitoringService:
    monitor_bot = None
    if settings.MONITOR_CHAT_ID:
        # Results go through the dedicated monitor bot when one is configured
        monitor_bot = Bot(token=settings.MONITOR_BOT_TOKEN) if settings.MONITOR_BOT_TOKEN else main_bot

    return MonitoringService(
        bot=monitor_bot,
        chat_id=settings.MONITOR_CHAT_ID,
        collector_url=settings.MONITOR_COLLECTOR_URL,
        timeout=settings.MONITOR_TIMEOUT_SECONDS,
    )


def build_quiz_service(monitoring: MonitoringService) -> QuizService:
    config = load_quiz_config(settings.QUIZ_CONFIG_PATH)

    questions = QuestionService(weights=config.scoring.weights)
    # A malformed question bank aborts startup
    questions.load(settings.QUESTIONS_PATH)
    logger.info("Question bank ready", **questions.stats())

    sessions = SessionStore(timeout_seconds=settings.SESSION_TIMEOUT_MINUTES * 60)
    logger.info("Session store ready", timeout_minutes=settings.SESSION_TIMEOUT_MINUTES)

    return QuizService(
        questions=questions,
        selector=SelectionService(questions),
        sessions=sessions,
        assessor=AssessmentService(config),
        config=config,
        monitoring=monitoring,
    )


async def send_daily_stats(quiz_service: QuizService, monitoring: MonitoringService):
    await monitoring.send_daily_stats(quiz_service.daily_report())


async def main():
    setup_logging()

    if not settings.BOT_TOKEN:
        logger.error("BOT_TOKEN is required to run the bot")
        sys.exit(1)

    bot = Bot(token=settings.BOT_TOKEN)
    monitoring = build_monitoring(bot)

    try:
        quiz_service = build_quiz_service(monitoring)
    except ValidationError as e:
        logger.error("Failed to load questions", error=str(e), question_id=e.question_id, field=e.field)
        await monitoring.close()
        await bot.session.close()
        sys.exit(1)

    dp = Dispatcher()
    dp.update.outer_middleware(ServicesMiddleware(quiz_service, monitoring))
    dp.include_router(start.router)
    dp.include_router(quiz.router)

    scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.TIMEZONE))

    # 1. Expired session sweep
    scheduler.add_job(
        quiz_service.sessions.sweep,
        trigger="interval",
        seconds=settings.SESSION_SWEEP_SECONDS,
        id="session_sweep",
        replace_existing=True,
    )

    # 2. Daily statistics to the monitor chat
    if monitoring.is_enabled:
        scheduler.add_job(
            send_daily_stats,
            trigger=CronTrigger(hour=settings.DAILY_STATS_HOUR, minute=settings.DAILY_STATS_MINUTE),
            args=[quiz_service, monitoring],
            id="daily_stats",
            replace_existing=True,
        )

    scheduler.start()
    logger.info("Scheduler started (Session sweep + Daily stats).")

    try:
        from aiogram.types import BotCommand, BotCommandScopeDefault
        await bot.set_my_commands([
            BotCommand(command="start", description="Begin a new assessment test"),
            BotCommand(command="restart", description="Restart the current test"),
            BotCommand(command="cancel", description="Cancel the current test"),
            BotCommand(command="help", description="Show help"),
        ], scope=BotCommandScopeDefault())
    except Exception as e:
        logger.error("Failed to set bot commands", error=str(e))

    await monitoring.send_startup_notification()
    logger.info("Starting Bot Polling Mode...", env=settings.ENV)
    try:
        await dp.start_polling(bot)
    finally:
        scheduler.shutdown(wait=False)
        await monitoring.send_shutdown_notification()
        await monitoring.close()
        if monitoring.bot is not None and monitoring.bot is not bot:
            await monitoring.bot.session.close()
        await bot.session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application stopped.")
