"""Route tracking exports."""

from .progress import RouteProgress, calculate_all_crew_progress, calculate_route_progress, get_progress_summary
from .schedule import ScheduleStatus, calculate_schedule_status
from .time_analytics import TimeBreakdown, calculate_time_breakdown
from .transitions import StopTransitionError, UnknownStopError

__all__ = [
    "RouteProgress",
    "ScheduleStatus",
    "StopTransitionError",
    "TimeBreakdown",
    "UnknownStopError",
    "calculate_all_crew_progress",
    "calculate_route_progress",
    "calculate_schedule_status",
    "calculate_time_breakdown",
    "get_progress_summary",
]
