"""Inline keyboards and fixed texts shown by the diary."""

from typing import List, Optional

from .base import Button

Keyboard = List[List[Button]]

# Sunday-first, matching User.quiz_day
DAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

CATEGORY_PAYLOADS = {
    "cat_tech": "Tech/Programming",
    "cat_science": "Science",
    "cat_creative": "Creative/Art",
    "cat_language": "Language",
    "cat_business": "Business",
    "cat_health": "Health/Fitness",
    "cat_general": "General",
    "cat_skip": None,
}

_CATEGORY_LABELS = {
    "cat_tech": "💻 Tech/Programming",
    "cat_science": "🔬 Science",
    "cat_creative": "🎨 Creative/Art",
    "cat_language": "📖 Language",
    "cat_business": "💼 Business",
    "cat_health": "🏥 Health/Fitness",
    "cat_general": "📚 General/Other",
    "cat_skip": "⏭️ Skip Category",
}

GOAL_PRESETS = (1, 2, 3, 5)

GENERIC_ERROR = "❌ Something went wrong. Please try again or use /start for help."


def main_menu() -> Keyboard:
    return [
        [Button("📚 Quick Learn", "quick_learn"), Button("👀 View Today", "view_today")],
        [Button("📊 My Stats", "show_stats"), Button("🎯 Goals", "manage_goals")],
        [Button("🧠 Take Quiz", "start_quiz"), Button("🔍 Search", "start_search")],
    ]


def view_menu() -> Keyboard:
    return [
        [Button("📅 Today", "view_today"), Button("📅 Yesterday", "view_yesterday")],
        [Button("📅 This Week", "view_week"), Button("📅 This Month", "view_month")],
        [Button("🔙 Back to Menu", "main_menu")],
    ]


def after_view() -> Keyboard:
    return [[Button("🔙 View Options", "back_to_view"), Button("🏠 Main Menu", "main_menu")]]


def categories(suggested: Optional[str] = None) -> Keyboard:
    """Category picker; the suggested category gets a marker."""
    buttons = []
    for payload, label in _CATEGORY_LABELS.items():
        if suggested and CATEGORY_PAYLOADS[payload] == suggested:
            label = f"✨ {label}"
        buttons.append(Button(label, payload))
    return [buttons[i : i + 2] for i in range(0, len(buttons), 2)]


def goals() -> Keyboard:
    presets = [Button(f"{n} per day", f"goal_{n}") for n in GOAL_PRESETS]
    return [
        presets[:3],
        presets[3:] + [Button("🔢 Custom", "goal_custom")],
        [Button("🚫 No goal", "goal_0")],
    ]


def quiz_days() -> Keyboard:
    buttons = [Button(name[:3], f"qday_{i}") for i, name in enumerate(DAY_NAMES)]
    return [buttons[:4], buttons[4:]]


def conversation_controls() -> Keyboard:
    return [[Button("✋ Stop Discussion", "stop_convo"), Button("📚 Log Another", "quick_learn")]]


def quiz_controls() -> Keyboard:
    return [[Button("✋ End Quiz", "stop_convo")]]


def stats_actions() -> Keyboard:
    return [[Button("🎯 Set Goal", "manage_goals"), Button("📤 Export Data", "export_data")]]


def summary_actions() -> Keyboard:
    return [[Button("🧠 Take Quiz", "start_quiz"), Button("🔙 Main Menu", "main_menu")]]


def quiz_actions() -> Keyboard:
    return [
        [Button("🎯 Practice Mode", "start_inline_quiz")],
        [Button("📝 Get Summary", "get_summary"), Button("🔙 Main Menu", "main_menu")],
    ]
