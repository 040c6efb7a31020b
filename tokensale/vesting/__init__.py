"""Vesting — расписание освобождения заблокированных балансов по эпохам."""

from .schedule import VestingSchedule, build_epochs

__all__ = [
    "VestingSchedule",
    "build_epochs",
]
