import asyncio
import time
from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional

from core.logger import logger
from models.question import Question
from models.session import AnswerRecord, QuizSession, SessionState


class SessionStore:
    """
    In-memory per-user quiz sessions with inactivity expiry.

    Expiry is measured from the last write. Expired sessions are purged lazily
    on read and in bulk by ``sweep()``, which the scheduler calls periodically.
    Callers handling an event for a user enter ``acquire(user_id)`` for the
    whole read-modify-write. ``sweep()`` also releases the locks of users who
    have no session and no event in flight.
    """

    def __init__(self, timeout_seconds: float, clock: Callable[[], float] = time.time):
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self._sessions: Dict[int, QuizSession] = {}
        self._locks: Dict[int, asyncio.Lock] = {}
        self._holders: Dict[int, int] = {}

    def lock(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, user_id: int):
        """Hold the user's lock. Waiters count as holders, so the lock is never swapped under them."""
        self._holders[user_id] = self._holders.get(user_id, 0) + 1
        try:
            async with self.lock(user_id):
                yield
        finally:
            remaining = self._holders[user_id] - 1
            if remaining:
                self._holders[user_id] = remaining
            else:
                del self._holders[user_id]

    def _is_busy(self, user_id: int) -> bool:
        if self._holders.get(user_id):
            return True
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()

    def _is_expired(self, session: QuizSession, now: float) -> bool:
        return now - session.last_activity >= self.timeout_seconds

    def _touch(self, session: QuizSession):
        session.last_activity = self.clock()

    def _drop(self, user_id: int) -> bool:
        # The lock is left for sweep(), which releases it once nobody holds it
        return self._sessions.pop(user_id, None) is not None

    def create(self, user_id: int, username: Optional[str] = None) -> QuizSession:
        now = self.clock()
        session = QuizSession(user_id=user_id, username=username or None, start_time=now, last_activity=now)
        self._sessions[user_id] = session
        logger.info("Quiz session created", user_id=user_id)
        return session

    def get(self, user_id: int) -> Optional[QuizSession]:
        session = self._sessions.get(user_id)
        if session is None:
            return None
        if self._is_expired(session, self.clock()):
            self._drop(user_id)
            logger.info("Quiz session expired", user_id=user_id, answered=len(session.answers))
            return None
        return session

    def has(self, user_id: int) -> bool:
        return self.get(user_id) is not None

    def assign_questions(self, user_id: int, questions: List[Question]) -> Optional[QuizSession]:
        session = self.get(user_id)
        if session is None:
            return None
        session.questions = list(questions)
        session.current_index = 0
        self._touch(session)
        return session

    def start_test(self, user_id: int, questions: List[Question]) -> Optional[QuizSession]:
        session = self.assign_questions(user_id, questions)
        if session is None:
            return None
        session.state = SessionState.IN_PROGRESS
        # Duration is measured from the first question, not from /start
        session.start_time = session.last_activity
        return session

    def current_question(self, user_id: int) -> Optional[Question]:
        session = self.get(user_id)
        if session is None:
            return None
        return session.current_question()

    def record_answer(self, user_id: int, answer: AnswerRecord, expected_index: Optional[int] = None) -> Optional[QuizSession]:
        session = self.get(user_id)
        if session is None:
            return None
        if expected_index is not None and session.current_index != expected_index:
            logger.info("Stale answer ignored", user_id=user_id, expected=expected_index, current=session.current_index)
            return None

        session.answers.append(answer)
        session.current_index += 1
        if answer.is_correct:
            session.score += answer.weight
        self._touch(session)
        return session

    def is_complete(self, user_id: int) -> bool:
        session = self.get(user_id)
        if session is None:
            return False
        return session.is_complete

    def complete(self, user_id: int) -> Optional[QuizSession]:
        session = self.get(user_id)
        if session is None:
            return None
        session.state = SessionState.COMPLETED
        self._touch(session)
        session.end_time = session.last_activity
        return session

    def clear(self, user_id: int) -> bool:
        removed = self._drop(user_id)
        if removed:
            logger.info("Quiz session cleared", user_id=user_id)
        return removed

    def reset(self, user_id: int, username: Optional[str] = None) -> QuizSession:
        self.clear(user_id)
        return self.create(user_id, username)

    async def sweep(self) -> int:
        """
        Purge expired sessions and release idle locks. Keys with an event in
        flight are left for the next pass. Runs without awaiting, so no event
        handler interleaves with it.
        """
        now = self.clock()
        purged = 0
        for user_id, session in list(self._sessions.items()):
            if self._is_expired(session, now) and not self._is_busy(user_id):
                del self._sessions[user_id]
                purged += 1

        released = 0
        for user_id in list(self._locks):
            if user_id not in self._sessions and not self._is_busy(user_id):
                del self._locks[user_id]
                released += 1

        if purged or released:
            logger.info(
                "Expired sessions purged", count=purged,
                locks_released=released, remaining=len(self._sessions),
            )
        return purged

    def all(self) -> List[QuizSession]:
        now = self.clock()
        return [s for s in self._sessions.values() if not self._is_expired(s, now)]

    def stats(self) -> dict:
        sessions = self.all()
        return {
            "total_active": len(sessions),
            "in_progress": sum(1 for s in sessions if s.state == SessionState.IN_PROGRESS),
            "completed": sum(1 for s in sessions if s.state == SessionState.COMPLETED),
            "ready": sum(1 for s in sessions if s.state == SessionState.READY),
            "locks": len(self._locks),
        }
