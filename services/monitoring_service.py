import asyncio
from datetime import datetime, timezone
from html import escape
from typing import Optional, Set

import httpx
from aiogram import Bot

from core.exceptions import ForwardingError
from core.logger import logger
from services.assessment_service import ResultRecord
from utils.formatting import format_duration


class MonitoringService:
    """
    Forwards completed results to the monitoring side: a Telegram chat, an
    HTTP collector, or both. Failures never reach the test-taker.
    """

    def __init__(
        self,
        bot: Optional[Bot] = None,
        chat_id: Optional[str] = None,
        collector_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.bot = bot if chat_id else None
        self.chat_id = chat_id or None
        self.collector_url = collector_url or None
        self.http_client = http_client
        if self.collector_url and self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=timeout)
        self._tasks: Set[asyncio.Task] = set()

        if not self.is_enabled:
            logger.info("Monitoring service disabled: no monitor chat or collector configured")

    @property
    def is_enabled(self) -> bool:
        return bool(self.bot or self.collector_url)

    def status(self) -> dict:
        return {
            "enabled": self.is_enabled,
            "has_chat": self.bot is not None,
            "has_collector": self.collector_url is not None,
            "pending": len(self._tasks),
        }

    async def _send_message(self, text: str):
        if not self.bot:
            return
        try:
            await self.bot.send_message(self.chat_id, text, parse_mode="HTML")
        except Exception as e:
            raise ForwardingError(f"Monitor chat unreachable: {e}") from e

    async def _post_record(self, record: ResultRecord):
        if not self.collector_url:
            return
        try:
            response = await self.http_client.post(self.collector_url, json=record.to_dict())
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ForwardingError(f"Collector unreachable: {e}") from e

    async def forward_result(self, record: ResultRecord) -> bool:
        if not self.is_enabled:
            logger.debug("Monitoring not enabled, skipping forward", user_id=record.user_id)
            return False

        ok = True
        for deliver in (self._send_message(format_result_record(record)), self._post_record(record)):
            try:
                await deliver
            except ForwardingError as e:
                ok = False
                logger.error("Error forwarding result", user_id=record.user_id, error=str(e))
        if ok:
            logger.info("Result forwarded", user_id=record.user_id, level=record.level)
        return ok

    def forward_in_background(self, record: ResultRecord) -> Optional[asyncio.Task]:
        """Schedule forwarding without waiting for it."""
        if not self.is_enabled:
            return None
        task = asyncio.create_task(self.forward_result(record))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Forwarding task failed", error=str(task.exception()))

    async def notify(self, text: str) -> bool:
        try:
            await self._send_message(text)
        except ForwardingError as e:
            logger.error("Error sending monitor notification", error=str(e))
            return False
        return self.bot is not None

    async def send_startup_notification(self) -> bool:
        return await self.notify(
            "🤖 <b>English Level Bot started</b>\n\n"
            f"📅 Time: {_now()}\n"
            "✅ Monitoring service connected"
        )

    async def send_shutdown_notification(self) -> bool:
        return await self.notify(f"🔴 <b>English Level Bot stopping</b>\n\n📅 Time: {_now()}")

    async def send_daily_stats(self, stats: dict) -> bool:
        lines = [
            "📊 <b>Daily Statistics</b>",
            "",
            f"📅 Date: {datetime.now(timezone.utc).date().isoformat()}",
            "",
            "<b>Sessions:</b>",
            f"• Total completed: {stats.get('total_completed', 0)}",
            f"• In progress: {stats.get('in_progress', 0)}",
        ]
        distribution = stats.get("level_distribution")
        if distribution:
            lines += ["", "<b>Level Distribution:</b>"]
            lines += [f"• {level}: {count}" for level, count in distribution.items()]
        return await self.notify("\n".join(lines))

    async def send_error_notification(self, error: Exception, context: str = "Unknown") -> bool:
        return await self.notify(
            "🚨 <b>Error Alert</b>\n\n"
            f"📍 Context: {escape(context)}\n"
            f"❌ Error: {escape(str(error))}\n"
            f"📅 Time: {_now()}"
        )

    async def drain(self):
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def close(self):
        await self.drain()
        if self.http_client is not None:
            await self.http_client.aclose()


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def format_result_record(record: ResultRecord) -> str:
    completed = datetime.fromtimestamp(record.completed_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    lines = [
        "📝 <b>New Test Completed</b>",
        "",
        f"👤 User ID: <code>{record.user_id}</code>",
    ]
    if record.username:
        lines.append(f"👤 Username: @{escape(record.username)}")
    lines += [
        f"🕐 Completed: {completed}",
        "",
        "📊 <b>Results:</b>",
        f"• Level: <b>{record.level}</b>",
        f"• Score: <b>{record.percentage_score}%</b>",
        f"• Correct: {record.correct_answers}/{record.total_questions}",
    ]
    for category, value in record.category_percentages.items():
        lines.append(f"• {category.capitalize()}: {value}%")
    lines += ["", f"⏱ Duration: {format_duration(record.duration_seconds)}"]
    return "\n".join(lines)
