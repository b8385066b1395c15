from typing import Optional


class QuizBotError(Exception):
    """Base class for errors raised by the assessment engine."""


class ValidationError(QuizBotError):
    """The question bank is malformed. Raised for the first offending question."""

    def __init__(self, message: str, question_id: Optional[object] = None, field: Optional[str] = None):
        super().__init__(message)
        self.question_id = question_id
        self.field = field


class NotFoundError(QuizBotError):
    """Unknown question id or missing session."""


class SessionNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__(f"No session for user {user_id}")
        self.user_id = user_id


class NoActiveTestError(NotFoundError):
    def __init__(self, user_id: int, state: str):
        super().__init__(f"Session for user {user_id} is not in progress (state={state})")
        self.user_id = user_id
        self.state = state


class ForwardingError(QuizBotError):
    """The monitoring collector could not be reached."""


class ConfigFallbackWarning(UserWarning):
    """Config file or section was missing or invalid; built-in defaults are used instead."""
