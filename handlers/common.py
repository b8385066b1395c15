from aiogram.utils.keyboard import InlineKeyboardBuilder

from constants.messages import Messages
from utils.formatting import OPTION_LETTERS

START_TEST = "start_test"
SHOW_INSTRUCTIONS = "show_instructions"
ANSWER_PREFIX = "answer_"


def answer_callback_data(question_id: int, index: int) -> str:
    return f"{ANSWER_PREFIX}{question_id}_{index}"


def parse_answer_callback(data: str):
    """answer_<question_id>_<index> -> (question_id, index), or None if malformed."""
    parts = data.split("_")
    if len(parts) != 3 or parts[0] != ANSWER_PREFIX.rstrip("_"):
        return None
    try:
        return int(parts[1]), int(parts[2])
    except ValueError:
        return None


def get_welcome_keyboard():
    builder = InlineKeyboardBuilder()
    builder.button(text=Messages.get("START_TEST_BTN"), callback_data=START_TEST)
    builder.button(text=Messages.get("INSTRUCTIONS_BTN"), callback_data=SHOW_INSTRUCTIONS)
    builder.adjust(1)
    return builder.as_markup()


def get_start_test_keyboard(again: bool = False):
    builder = InlineKeyboardBuilder()
    key = "TAKE_AGAIN_BTN" if again else "START_TEST_BTN"
    builder.button(text=Messages.get(key), callback_data=START_TEST)
    return builder.as_markup()


def get_answer_keyboard(payload):
    builder = InlineKeyboardBuilder()
    for index, (letter, option) in enumerate(zip(OPTION_LETTERS, payload.options)):
        builder.button(text=f"{letter}. {option}", callback_data=answer_callback_data(payload.question_id, index))
    builder.adjust(1)
    return builder.as_markup()
