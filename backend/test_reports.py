"""Tests for daily reports, the game summary and the newsletter."""
from models import DailyReport, DayStats, Decision, ResolvedCase, Scenario
from reports import build_daily_report, format_newsletter, summarize_game


def make_case(is_scam, approved, index=0, tip="Verify the caller through a known number."):
    scenario = Scenario(
        is_scam=is_scam,
        customer_name=f"Customer {index}",
        scam_rationale="Caller ID did not match records." if is_scam else "Request matched account history.",
        cybersecurity_tip=tip,
    )
    correct = approved != is_scam
    return ResolvedCase(
        scenario=scenario,
        player_decision=Decision.APPROVED if approved else Decision.DENIED,
        is_correct=correct,
        case_index=index,
    )


def make_report(day, correct, incorrect, lost):
    return DailyReport(day=day, stats=DayStats(correct, incorrect, lost), cases=(), final_capital=100.0)


class TestBuildDailyReport:

    def test_stats_are_copied(self):
        stats = DayStats(correct=3, incorrect=2, capital_lost=5_000_000)
        report = build_daily_report(1, stats, [make_case(False, True)], 120_000_000)
        stats.correct = 99

        assert report.stats.correct == 3
        assert report.stats.total == 5
        assert len(report.cases) == 1
        assert report.final_capital == 120_000_000


class TestSummarizeGame:
    """Tests for the end-of-game aggregation."""

    def test_no_reports(self):
        summary = summarize_game([], 0.0)
        assert summary.days_played == 0
        assert summary.accuracy == 0.0
        assert summary.best_day is None
        assert summary.worst_day is None

    def test_totals_and_accuracy(self):
        reports = [make_report(1, 4, 1, 5_000_000), make_report(2, 2, 3, 80_000_000)]
        summary = summarize_game(reports, 0.0)

        assert summary.days_played == 2
        assert summary.total_cases == 10
        assert summary.total_correct == 6
        assert summary.accuracy == 60.0
        assert summary.total_capital_lost == 85_000_000
        assert summary.best_day == 1
        assert summary.worst_day == 2

    def test_accuracy_rounded(self):
        summary = summarize_game([make_report(1, 2, 1, 0.0)], 1.0)
        assert summary.accuracy == 66.7

    def test_best_day_tie_goes_to_earlier(self):
        reports = [make_report(1, 3, 2, 0.0), make_report(2, 3, 2, 0.0)]
        summary = summarize_game(reports, 1.0)
        assert summary.best_day == 1
        assert summary.worst_day is None


class TestFormatNewsletter:

    def test_headline_and_stats(self):
        report = build_daily_report(2, DayStats(3, 2, 45_000_000), [], 105_000_000, ["Trade War Escalation"])
        text = format_newsletter(report)

        assert text.startswith("INTELLIGENCE DAILY - DAY 2 OPERATIONAL SUMMARY")
        assert "Correct decisions: 3" in text
        assert "Capital lost: $45,000,000" in text
        assert "MARKET WIRE" in text
        assert "- Trade War Escalation" in text

    def test_lessons_list_missed_cases(self):
        cases = [make_case(True, True, 0), make_case(False, False, 1), make_case(True, False, 2)]
        report = build_daily_report(1, DayStats(1, 2, 0.0), cases, 100.0)
        text = format_newsletter(report)

        assert "LESSONS FROM THE FLOOR" in text
        assert "Customer 0 (scam approved)" in text
        assert "Customer 1 (legitimate customer denied)" in text
        assert "Customer 2" not in text
        assert "Tip: Verify the caller through a known number." in text

    def test_clean_day_has_no_lessons(self):
        report = build_daily_report(1, DayStats(1, 0, 0.0), [make_case(False, True)], 100.0)
        assert "LESSONS FROM THE FLOOR" not in format_newsletter(report)
