"""Progress percentage calculation."""

from decimal import ROUND_HALF_UP, Decimal

from learnhub.core.exceptions import InvalidArgumentError


COMPLETE_PERCENTAGE = 100


def calculate_progress(completed: int, total: int) -> tuple[int, bool]:
    """Convert a completed/total lesson count into ``(percentage, is_complete)``.

    The percentage is rounded half up: ``(1, 3) -> 33``, ``(2, 3) -> 67``.
    Content without lessons reports ``(0, False)``; a completed count at or
    above the total reports ``(100, True)``. Partial progress never reports
    100, so ``(199, 200)`` is ``(99, False)``.

    Raises:
        InvalidArgumentError: If either count is negative
    """
    if completed < 0 or total < 0:
        raise InvalidArgumentError(
            f"Lesson counts must be non-negative (completed={completed}, total={total})"
        )
    if total == 0:
        return 0, False
    if completed >= total:
        return COMPLETE_PERCENTAGE, True

    percentage = (Decimal(completed) * 100 / Decimal(total)).quantize(
        Decimal(1), rounding=ROUND_HALF_UP
    )
    return min(int(percentage), COMPLETE_PERCENTAGE - 1), False


def is_completed(percentage: int) -> bool:
    """Check if a progress percentage means the content is finished."""
    return percentage >= COMPLETE_PERCENTAGE
