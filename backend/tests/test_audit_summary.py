from types import SimpleNamespace

from academy.services.audit_summary import completion_counters, progress_percent, summarize_counts


def _line(status: str, expected: int, counted=None, *, approved: bool = False):
    discrepancy = None if counted is None else counted - expected
    return SimpleNamespace(
        status=status,
        expected_quantity=expected,
        counted_quantity=counted,
        discrepancy=discrepancy,
        adjustment_approved=approved,
    )


def test_summary_of_empty_audit_has_zero_progress() -> None:
    summary = summarize_counts([])

    assert summary["total_items"] == 0
    assert summary["progress"] == 0
    assert summary["by_status"] == {"pending": 0, "counted": 0, "verified": 0, "adjusted": 0, "skipped": 0}


def test_summary_rolls_up_statuses_discrepancies_and_quantities() -> None:
    lines = [
        _line("counted", 10, 8),
        _line("verified", 5, 6),
        _line("adjusted", 4, 3, approved=True),
        _line("counted", 2, 2),
        _line("pending", 7),
        _line("skipped", 3),
    ]

    summary = summarize_counts(lines)

    assert summary["total_items"] == 6
    assert summary["by_status"]["counted"] == 2
    assert summary["by_status"]["pending"] == 1
    assert summary["discrepancies"] == {"total": 3, "positive": 1, "negative": 2, "pending_adjustment": 2}
    assert summary["quantities"] == {"expected": 31, "counted": 19, "difference": -12}
    assert summary["progress"] == 83


def test_skipped_lines_never_count_as_discrepancies() -> None:
    # Counted first, then skipped: the old quantity stays on the line.
    summary = summarize_counts([_line("skipped", 10, 4), _line("counted", 1, 1)])

    assert summary["discrepancies"]["total"] == 0
    assert summary["quantities"]["counted"] == 5


def test_progress_rounds_half_up() -> None:
    assert progress_percent(total=8, pending=7) == 13  # 12.5
    assert progress_percent(total=3, pending=1) == 67
    assert progress_percent(total=3, pending=0) == 100
    assert progress_percent(total=0, pending=0) == 0


def test_progress_reaches_100_only_when_nothing_is_pending() -> None:
    lines = [_line("counted", 1, 1) for _ in range(199)] + [_line("pending", 1)]

    summary = summarize_counts(lines)

    assert summary["by_status"]["pending"] == 1
    assert summary["progress"] == 99
    assert progress_percent(total=201, pending=200) == 1  # 0.497
    assert progress_percent(total=201, pending=201) == 0


def test_completion_counters_exclude_skipped_lines() -> None:
    counters = completion_counters([_line("counted", 5, 4), _line("verified", 3, 3), _line("skipped", 2)])

    assert counters == {"counted_items": 2, "items_with_discrepancy": 1, "total_counted_quantity": 7}
