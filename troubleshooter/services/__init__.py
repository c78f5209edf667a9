from .user_store import UserStore, db_session, init_db
from .assessment_service import AssessmentService, next_path_after, step_view
from .reminders import QuickDashReminders, QuickDashStatus, ReminderDisplay

__all__ = [
    "UserStore",
    "db_session",
    "init_db",
    "AssessmentService",
    "next_path_after",
    "step_view",
    "QuickDashReminders",
    "QuickDashStatus",
    "ReminderDisplay",
]
