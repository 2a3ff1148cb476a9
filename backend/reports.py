"""
End-of-day and end-of-game reporting.
"""

from typing import Iterable, List, Optional

from models import DailyReport, DayStats, GameSummary, ResolvedCase


def build_daily_report(
    day: int,
    stats: DayStats,
    cases: Iterable[ResolvedCase],
    final_capital: float,
    economic_events: Iterable[str] = (),
) -> DailyReport:
    """Snapshot the day. Stats are copied so later mutation can't leak in."""
    return DailyReport(
        day=day,
        stats=stats.copy(),
        cases=tuple(cases),
        final_capital=final_capital,
        economic_events=tuple(economic_events),
    )


def summarize_game(reports: List[DailyReport], final_capital: float) -> GameSummary:
    """Aggregate statistics across every recorded day."""
    total_correct = sum(r.stats.correct for r in reports)
    total_incorrect = sum(r.stats.incorrect for r in reports)
    total_cases = total_correct + total_incorrect
    accuracy = round(total_correct / total_cases * 100, 1) if total_cases else 0.0

    best_day: Optional[int] = None
    worst_day: Optional[int] = None
    if reports:
        # max() keeps the first of equal entries, so ties go to the earlier day
        best_day = max(reports, key=lambda r: r.stats.correct).day
        worst = max(reports, key=lambda r: r.stats.capital_lost)
        if worst.stats.capital_lost > 0:
            worst_day = worst.day

    return GameSummary(
        days_played=len(reports),
        total_cases=total_cases,
        total_correct=total_correct,
        total_incorrect=total_incorrect,
        accuracy=accuracy,
        total_capital_lost=sum(r.stats.capital_lost for r in reports),
        final_capital=final_capital,
        best_day=best_day,
        worst_day=worst_day,
    )


def format_newsletter(report: DailyReport) -> str:
    """Render the 'Intelligence Daily' briefing for a finished day."""
    stats = report.stats
    lines = [
        f"INTELLIGENCE DAILY - DAY {report.day} OPERATIONAL SUMMARY",
        "",
        f"Cases reviewed: {stats.total}",
        f"Correct decisions: {stats.correct}",
        f"Incorrect decisions: {stats.incorrect}",
        f"Capital lost: ${stats.capital_lost:,.0f}",
        f"Closing capital: ${report.final_capital:,.0f}",
    ]

    if report.economic_events:
        lines.extend(["", "MARKET WIRE"])
        lines.extend(f"- {event}" for event in report.economic_events)

    missed = [c for c in report.cases if not c.is_correct]
    if missed:
        lines.extend(["", "LESSONS FROM THE FLOOR"])
        for case in missed:
            verdict = "scam approved" if case.scenario.is_scam else "legitimate customer denied"
            lines.append(f"- {case.scenario.customer_name} ({verdict}): {case.scenario.scam_rationale}")
            if case.scenario.cybersecurity_tip:
                lines.append(f"  Tip: {case.scenario.cybersecurity_tip}")

    return "\n".join(lines)
