"""Lesson progress: state machine, persistence and course aggregation."""

from .aggregator import CourseProgressView, ModuleProgress, aggregate, percentage
from .exceptions import PersistenceTransientFailure, ProgressError
from .models import LessonProgressStatus, PlaybackState
from .repository import ProgressRepository
from .tracker import ProgressTracker


__all__ = [
    "CourseProgressView",
    "LessonProgressStatus",
    "ModuleProgress",
    "PersistenceTransientFailure",
    "PlaybackState",
    "ProgressError",
    "ProgressRepository",
    "ProgressTracker",
    "aggregate",
    "percentage",
]
