"""Learner progress tracking module.

Provides:
- Progress percentage calculation
- Idempotent enrollment and lesson completion (``EnrollmentLedger``)
- Learner library and per-content progress queries
"""

from .calculator import calculate_progress, is_completed
from .models import Enrollment, EnrollmentStatus, LessonCompletion


__all__ = [
    "Enrollment",
    "EnrollmentStatus",
    "LessonCompletion",
    "calculate_progress",
    "is_completed",
]
