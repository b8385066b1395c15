from unittest.mock import AsyncMock, MagicMock

import pytest

from constants.messages import Messages
from handlers.common import (
    START_TEST,
    answer_callback_data,
    get_answer_keyboard,
    get_start_test_keyboard,
    parse_answer_callback,
)
from handlers.quiz import answer_callback, start_test_callback
from services.quiz_service import QuestionPayload
from utils.formatting import format_duration, format_question, progress_bar
from utils.middleware import ServicesMiddleware


@pytest.fixture
def payload():
    return QuestionPayload(
        question_id=17,
        text="If it rains, we <stay> home.",
        options=("stay", "will stay", "would stay", "stayed"),
        number=5,
        total=20,
    )


def test_answer_callback_data_parses_back():
    assert parse_answer_callback(answer_callback_data(17, 3)) == (17, 3)


@pytest.mark.parametrize("data", ["answer_17", "answer_x_1", "answers_1_2", "answer_1_2_3", "start_test"])
def test_malformed_callback_data(data):
    assert parse_answer_callback(data) is None


def test_answer_keyboard(payload):
    markup = get_answer_keyboard(payload)

    buttons = [row[0] for row in markup.inline_keyboard]
    assert len(buttons) == 4
    assert buttons[1].text == "B. will stay"
    assert buttons[3].callback_data == "answer_17_3"


def test_start_keyboard_uses_start_callback():
    markup = get_start_test_keyboard(again=True)
    assert markup.inline_keyboard[0][0].callback_data == START_TEST


def test_format_question_escapes_html(payload):
    text = format_question(payload)

    assert "Question 5/20" in text
    assert "&lt;stay&gt;" in text
    assert "D. stayed" in text


def test_progress_bar_and_duration():
    assert progress_bar(5, 20) == "[██░░░░░░░░] 25%"
    assert progress_bar(0, 0).endswith("0%")
    assert format_duration(125) == "2m 5s"
    assert format_duration(42) == "42s"


@pytest.mark.asyncio
async def test_middleware_injects_services():
    quiz_service, monitoring = MagicMock(), MagicMock()
    middleware = ServicesMiddleware(quiz_service, monitoring)
    handler = AsyncMock(return_value="handled")
    data = {}

    result = await middleware(handler, MagicMock(), data)

    assert result == "handled"
    assert data["quiz_service"] is quiz_service
    assert data["monitoring"] is monitoring


def make_bot():
    bot = MagicMock()
    bot.send_message = AsyncMock()
    return bot


def make_callback(data, user_id=1, chat_id=10):
    callback = MagicMock()
    callback.data = data
    callback.from_user.id = user_id
    callback.message.chat.id = chat_id
    callback.answer = AsyncMock()
    callback.message.delete = AsyncMock()
    callback.message.answer = AsyncMock()
    return callback


def sent_texts(bot):
    return [call.args[1] for call in bot.send_message.await_args_list]


@pytest.mark.asyncio
async def test_answer_without_session_asks_to_start_again(quiz_service):
    bot = make_bot()
    callback = make_callback("answer_5_1")

    await answer_callback(callback, bot, quiz_service)

    callback.answer.assert_awaited_once()
    bot.send_message.assert_awaited_once_with(10, Messages.get("SESSION_EXPIRED"))


@pytest.mark.asyncio
async def test_answer_before_test_started(quiz_service):
    await quiz_service.start(1)
    bot = make_bot()

    await answer_callback(make_callback("answer_5_1"), bot, quiz_service)

    bot.send_message.assert_awaited_once_with(10, Messages.get("NO_ACTIVE_TEST"))


@pytest.mark.asyncio
async def test_malformed_answer_is_rejected(quiz_service):
    bot = make_bot()
    callback = make_callback("answer_oops")

    await answer_callback(callback, bot, quiz_service)

    callback.answer.assert_awaited_once_with(Messages.get("INVALID_ANSWER"))
    bot.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_start_test_without_session_asks_to_start_again(quiz_service):
    bot = make_bot()

    await start_test_callback(make_callback("start_test"), bot, quiz_service)

    bot.send_message.assert_awaited_once_with(10, Messages.get("SESSION_EXPIRED"))


@pytest.mark.asyncio
async def test_start_test_then_correct_answer(quiz_service):
    await quiz_service.start(1)
    bot = make_bot()

    await start_test_callback(make_callback("start_test"), bot, quiz_service)

    texts = sent_texts(bot)
    assert texts[0] == quiz_service.config.bot.instructions
    assert "Question 1/4" in texts[1]

    current = await quiz_service.current_question(1)
    question = quiz_service.questions.by_id(current.question_id)
    bot.send_message.reset_mock()

    await answer_callback(make_callback(answer_callback_data(question.id, question.correct_index)), bot, quiz_service)

    texts = sent_texts(bot)
    assert texts[0] == Messages.get("CORRECT")
    assert "Question 2/4" in texts[1]
