from .service import ScheduleStats, filter_doctors, list_specialties, summarize_schedule

__all__ = ["ScheduleStats", "filter_doctors", "list_specialties", "summarize_schedule"]
