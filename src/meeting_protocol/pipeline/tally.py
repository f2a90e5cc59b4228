"""
Area-weighted vote tabulation.

Percentages of an agenda item are shares of the area that actually voted on
it (for + against + abstain). The building's total area only matters for
meeting-level participation. Degenerate input (no votes, zero area) yields
zeros rather than errors.
"""

from dataclasses import dataclass, field

from ..models.meeting import AgendaItem, Meeting

# Flat pass rule applied when item thresholds are not honoured
DEFAULT_PASS_PERCENT = 50.0


@dataclass(frozen=True)
class TallyResult:
    """Vote totals and shares for one agenda item."""

    votes_for: float
    votes_against: float
    votes_abstain: float
    percent_for: float
    percent_against: float
    percent_abstain: float
    threshold_met: bool

    @property
    def cast_area(self) -> float:
        return self.votes_for + self.votes_against + self.votes_abstain


@dataclass(frozen=True)
class MeetingQuorum:
    """Meeting-level participation."""

    percent: float
    quorum_reached: bool


@dataclass
class TallySummary:
    """All per-item results of a meeting plus its quorum."""

    quorum: MeetingQuorum
    items: dict[str, TallyResult] = field(default_factory=dict)

    def for_item(self, item: AgendaItem) -> TallyResult:
        return self.items[item.id]


def _share(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


class TallyEngine:
    """
    Computes per-item results and meeting quorum.

    By default an item passes when more than 50% of the cast area voted
    "for", whatever its configured threshold policy. With
    `honor_item_thresholds=True` the item's own policy percent is used.
    Abstentions count towards the cast area in both modes.
    """

    def __init__(self, honor_item_thresholds: bool = False):
        self.honor_item_thresholds = honor_item_thresholds

    def pass_percent(self, item: AgendaItem) -> float:
        if self.honor_item_thresholds:
            return item.threshold.percent
        return DEFAULT_PASS_PERCENT

    def compute_item_result(self, item: AgendaItem, total_area: float) -> TallyResult:
        """
        Tabulate one agenda item.

        Args:
            item: Agenda item with pre-aggregated areas
            total_area: Building total area (not used as a denominator)

        Returns:
            TallyResult with shares of the cast area
        """
        cast = item.votes_for_area + item.votes_against_area + item.votes_abstain_area
        percent_for = _share(item.votes_for_area, cast)

        return TallyResult(
            votes_for=item.votes_for_area,
            votes_against=item.votes_against_area,
            votes_abstain=item.votes_abstain_area,
            percent_for=percent_for,
            percent_against=_share(item.votes_against_area, cast),
            percent_abstain=_share(item.votes_abstain_area, cast),
            threshold_met=percent_for > self.pass_percent(item),
        )

    def compute_meeting_quorum(self, meeting: Meeting) -> MeetingQuorum:
        """Participation share of the total area and whether it meets the quorum."""
        percent = _share(meeting.voted_area, meeting.total_area)
        return MeetingQuorum(
            percent=percent,
            quorum_reached=percent >= meeting.quorum_percent,
        )

    def tally(self, agenda_items: list[AgendaItem], meeting: Meeting) -> TallySummary:
        """Tabulate every agenda item and the meeting quorum."""
        summary = TallySummary(quorum=self.compute_meeting_quorum(meeting))
        for item in agenda_items:
            summary.items[item.id] = self.compute_item_result(item, meeting.total_area)
        return summary
