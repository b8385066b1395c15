from html import escape

from models.question import LEVEL_ORDER

OPTION_LETTERS = ("A", "B", "C", "D")

LEVEL_EMOJI = {"A1": "🌱", "A2": "🌿", "B1": "🌳", "B2": "🌲"}
LEVEL_DESCRIPTION = {
    "A1": "Beginner",
    "A2": "Elementary",
    "B1": "Intermediate",
    "B2": "Upper-Intermediate",
}


def progress_bar(current: int, total: int) -> str:
    percent = round(current * 100 / total) if total else 0
    filled = round(percent / 10)
    return f"[{'█' * filled}{'░' * (10 - filled)}] {percent}%"


def format_duration(seconds: int) -> str:
    minutes, seconds = divmod(int(seconds), 60)
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_question(payload) -> str:
    lines = [
        f"📝 <b>Question {payload.number}/{payload.total}</b>",
        progress_bar(payload.number, payload.total),
        "",
        escape(payload.text),
        "",
    ]
    for letter, option in zip(OPTION_LETTERS, payload.options):
        lines.append(f"{letter}. {escape(option)}")
    return "\n".join(lines)


def format_result_message(assessment) -> str:
    level = assessment.level.value
    emoji = LEVEL_EMOJI.get(level, "📊")
    description = LEVEL_DESCRIPTION.get(level, level)

    lines = [
        "📊 <b>Your English Level Assessment Results</b>",
        "",
        f"{emoji} <b>Level: {level} ({description})</b>",
        "",
        f"📈 <b>Overall Score: {assessment.percentage_score}%</b>",
        f"✅ Correct answers: {assessment.correct_answers}/{assessment.total_questions}",
        "",
        "📚 <b>Score by Category:</b>",
    ]
    for category, stats in assessment.category_stats.items():
        lines.append(f"• {category.value.capitalize()}: {stats.percentage}% ({stats.correct}/{stats.total})")

    lines += ["", "📊 <b>Score by Level:</b>"]
    for lvl in LEVEL_ORDER:
        stats = assessment.level_stats.get(lvl)
        if stats and stats.total > 0:
            lines.append(f"• {lvl.value}: {stats.percentage}% ({stats.correct}/{stats.total})")

    lines += ["", "💡 <b>Recommendation:</b>", escape(assessment.recommendation)]
    return "\n".join(lines)


def format_stats_message(stats: dict) -> str:
    sessions = stats["sessions"]
    questions = stats["questions"]
    by_level = ", ".join(f"{level}({count})" for level, count in questions["by_level"].items())
    by_category = ", ".join(f"{category}({count})" for category, count in questions["by_category"].items())
    return "\n".join([
        "📊 <b>Bot Statistics</b>",
        "",
        "<b>Active Sessions:</b>",
        f"• Total: {sessions['total_active']}",
        f"• In Progress: {sessions['in_progress']}",
        f"• Ready: {sessions['ready']}",
        f"• Completed: {sessions['completed']}",
        "",
        "<b>Questions:</b>",
        f"• Total: {questions['total']}",
        f"• By Level: {by_level}",
        f"• By Category: {by_category}",
        "",
        f"<b>Tests completed since last report:</b> {stats['total_completed']}",
    ])
