"""Tests for progress percentage calculation."""

import pytest

from learnhub.core.exceptions import InvalidArgumentError
from learnhub.progress.calculator import calculate_progress, is_completed


class TestCalculateProgress:
    """Tests for calculate_progress."""

    @pytest.mark.parametrize(
        ("completed", "total", "expected"),
        [
            (1, 3, (33, False)),
            (2, 3, (67, False)),
            (3, 3, (100, True)),
            (0, 0, (0, False)),
            (6, 5, (100, True)),
            (0, 4, (0, False)),
            (1, 2, (50, False)),
            (1, 8, (13, False)),
        ],
    )
    def test_known_values(self, completed: int, total: int, expected) -> None:
        assert calculate_progress(completed, total) == expected

    def test_partial_progress_never_reaches_100(self) -> None:
        """199 of 200 rounds to 100 but is not complete."""
        assert calculate_progress(199, 200) == (99, False)

    def test_completed_without_lessons_is_not_complete(self) -> None:
        assert calculate_progress(2, 0) == (0, False)

    @pytest.mark.parametrize(("completed", "total"), [(-1, 3), (1, -3)])
    def test_negative_counts_rejected(self, completed: int, total: int) -> None:
        with pytest.raises(InvalidArgumentError):
            calculate_progress(completed, total)


class TestIsCompleted:
    """Tests for is_completed."""

    def test_threshold(self) -> None:
        assert is_completed(100) is True
        assert is_completed(99) is False
        assert is_completed(0) is False
