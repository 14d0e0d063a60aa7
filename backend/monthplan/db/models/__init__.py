"""ORM models exposed for metadata discovery."""
from monthplan.db.models.generation_quota import GenerationQuota
from monthplan.db.models.goal_preference import GoalPreference
from monthplan.db.models.monthly_plan import MonthlyPlan
from monthplan.db.models.plan_draft import PlanDraft
from monthplan.db.models.plan_task import PlanTask
from monthplan.db.models.user import User

__all__ = [
    "GenerationQuota",
    "GoalPreference",
    "MonthlyPlan",
    "PlanDraft",
    "PlanTask",
    "User",
]
