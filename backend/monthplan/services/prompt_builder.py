"""Prompt construction for monthly plan generation."""
from __future__ import annotations

from datetime import date
from typing import Optional

from monthplan.api.schemas.plan import GeneratePlanRequest
from monthplan.core.config import settings

BUSINESS_HOURS_START = "09:00"
BUSINESS_HOURS_END = "18:00"

DEFAULT_SYSTEM_PROMPT = (
    "You are a practical monthly planning assistant. "
    "You turn a person's goals into a realistic, week-by-week schedule of concrete tasks. "
    "You never schedule work during the person's fixed commitments. "
    "Always answer with a single JSON object and nothing else."
)

COMPLEXITY_GUIDE = (
    "**Task Complexity Guide:**\n"
    "- Simple: 3-5 shorter tasks per day, 30-60 minutes each\n"
    "- Balanced: 2-3 medium tasks per day, 1-2 hours each\n"
    "- Ambitious: 1-2 complex tasks per day, 2-4 hours each"
)

OUTPUT_CONTRACT = """{
  "monthly_summary": "A clear overview of the plan and key objectives",
  "weekly_breakdown": [
    {
      "week": 1,
      "focus": "Main theme for this week",
      "goals": ["Weekly goal 1", "Weekly goal 2"],
      "daily_tasks": {
        "Monday": [
          {
            "task_description": "Specific, actionable task",
            "focus_area": "Category from user's focus areas",
            "start_time": "HH:MM (24-hour clock)",
            "end_time": "HH:MM (24-hour clock)",
            "difficulty_level": "simple|moderate|advanced",
            "scheduling_reason": "Why this task is scheduled at this time"
          }
        ],
        "Tuesday": [],
        "Wednesday": [],
        "Thursday": [],
        "Friday": [],
        "Saturday": [],
        "Sunday": []
      }
    }
  ],
  "personalization_notes": ["How the plan reflects the user's preferences"]
}"""


def current_month_start(today: Optional[date] = None) -> date:
    return (today or date.today()).replace(day=1)


def build_system_prompt() -> str:
    """Configured system prompt, falling back to the built-in planner persona."""
    override = (settings.openrouter_system_prompt or "").strip()
    return override or DEFAULT_SYSTEM_PROMPT


def format_fixed_commitments(request: GeneratePlanRequest) -> str:
    if not request.fixed_commitments:
        return "No fixed commitments"
    lines = []
    for commitment in request.fixed_commitments:
        line = f"- {commitment.day_of_week} from {commitment.start_time} to {commitment.end_time}"
        if commitment.description:
            line = f"{line}: {commitment.description}"
        lines.append(line)
    return "\n".join(lines)


def build_plan_prompt(
    request: GeneratePlanRequest,
    month_start: Optional[date] = None,
    today: Optional[date] = None,
) -> str:
    """User prompt for one generation; identical inputs and dates give identical text."""
    today = today or date.today()
    month_start = month_start or current_month_start(today)
    focus_areas = request.focus_areas.strip() or "Not specified"

    return (
        "Generate a monthly productivity plan with the following requirements:\n\n"
        "**User Goals:**\n"
        f"{request.goals_text.strip()}\n\n"
        "**Preferences:**\n"
        f"- Task Complexity: {request.task_complexity}\n"
        f"- Focus Areas: {focus_areas}\n"
        f"- Weekend Preference: {request.weekend_preference}\n\n"
        "**Fixed Commitments (IMPORTANT - Do NOT schedule tasks during these times):**\n"
        f"{format_fixed_commitments(request)}\n\n"
        "**Context:**\n"
        f"- Month: {month_start.isoformat()}\n"
        f"- Current Date: {today.isoformat()}\n"
        f"- Typical business hours: {BUSINESS_HOURS_START} - {BUSINESS_HOURS_END}\n\n"
        "**Output Format (Strict JSON):**\n"
        f"{OUTPUT_CONTRACT}\n\n"
        "**Scheduling Requirements (CRITICAL):**\n"
        "1. **RESPECT FIXED COMMITMENTS**: You MUST NOT schedule any task that overlaps the fixed commitment "
        "time slots listed above\n"
        "2. For each scheduled task, verify start_time and end_time do NOT overlap with any fixed commitment\n"
        f"3. Create realistic, achievable tasks based on complexity level ({request.task_complexity})\n"
        f"4. Respect the user's weekend preference ({request.weekend_preference})\n"
        f"5. Focus primarily on these areas: {focus_areas}\n"
        "6. Provide clear, actionable task descriptions with estimated durations\n"
        f"7. Consider business hours ({BUSINESS_HOURS_START}-{BUSINESS_HOURS_END}) when scheduling, "
        "unless the user's commitments indicate otherwise\n"
        "8. Spread tasks evenly throughout the week when possible\n\n"
        f"{COMPLEXITY_GUIDE}\n\n"
        "Please generate a complete monthly plan following this structure."
    )
