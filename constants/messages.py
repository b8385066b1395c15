class Messages:
    TEXTS = {
        "START_TEST_BTN": "📝 Start Test",
        "INSTRUCTIONS_BTN": "ℹ️ Instructions",
        "TAKE_AGAIN_BTN": "📝 Take Test Again",
        "TEST_IN_PROGRESS": (
            "⚠️ You have an active test in progress.\n\n"
            "Use /restart to start over or continue with the current test."
        ),
        "SESSION_EXPIRED": "⚠️ Session expired. Please use /start to begin.",
        "NO_ACTIVE_TEST": "⚠️ No active test. Please use /start to begin.",
        "NO_QUESTIONS": "⚠️ No questions are available right now. Please try again later.",
        "ALREADY_ANSWERED": "⚠️ This question was already answered.",
        "INVALID_ANSWER": "⚠️ Invalid answer. Please try again.",
        "CORRECT": "✅ Correct!",
        "INCORRECT": "❌ Incorrect. The correct answer was: {answer}",
        "TAKE_AGAIN": "🔄 Would you like to take the test again?",
        "SELECT_ANSWER": (
            "⚠️ Please select an answer from the options above.\n\n"
            "Or use:\n• /restart to start over\n• /cancel to cancel the test"
        ),
        "GREETING": "👋 Hi! Use /start to begin the English level assessment test.\n\nOr use /help for more information.",
        "HELP": (
            "📖 <b>English Level Bot Help</b>\n\n"
            "<b>Available Commands:</b>\n"
            "• /start - Begin a new assessment test\n"
            "• /restart - Restart the current test\n"
            "• /cancel - Cancel the current test\n"
            "• /help - Show this help message\n\n"
            "<b>About the Test:</b>\n"
            "• {total} multiple-choice questions\n"
            "• Tests vocabulary and grammar\n"
            "• Determines your level: A1, A2, B1, or B2\n"
            "• Takes approximately 5-10 minutes\n\n"
            "<b>Tips:</b>\n"
            "• Read each question carefully\n"
            "• Choose the best answer from the options\n"
            "• You can restart anytime if needed\n"
            "• Your data is not stored after the session ends"
        ),
        "ERROR": "❌ An error occurred. Please try /start again.",
        "CANCEL_ERROR": "❌ An error occurred while cancelling.",
        "STATS_ERROR": "❌ Error retrieving statistics.",
        "RELOAD_OK": "✅ Reloaded {count} questions.",
        "RELOAD_FAILED": "❌ Reload failed, the previous question set is still active:\n{error}",
    }

    @classmethod
    def get(cls, key: str) -> str:
        return cls.TEXTS.get(key, key)
