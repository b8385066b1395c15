from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from core.logger import logger
from services.monitoring_service import MonitoringService
from services.quiz_service import QuizService


class ServicesMiddleware(BaseMiddleware):
    """Hands the process-wide services to every handler."""

    def __init__(self, quiz_service: QuizService, monitoring: MonitoringService):
        self.quiz_service = quiz_service
        self.monitoring = monitoring

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        # In aiogram, event can be Update or the actual Telegram object
        if hasattr(event, "event"):
            logger.debug("Update received", type=type(event.event).__name__)
        else:
            logger.debug("Update received", type=type(event).__name__)

        data["quiz_service"] = self.quiz_service
        data["monitoring"] = self.monitoring
        return await handler(event, data)
