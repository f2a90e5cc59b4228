"""
Meeting, agenda item and vote record models.

These are the finalized records handed over by the meeting workflow once
voting is closed. Area sums are already aggregated upstream; nothing here
re-validates vote legality.

Votes are weighted by owned floor area (sq.m) rather than one vote per
person, so every amount below is an area.
"""

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, Field


class MeetingFormat(str, Enum):
    """How the general meeting was held."""

    ONLINE = 'online'
    OFFLINE = 'offline'
    HYBRID = 'hybrid'


class VoteChoice(str, Enum):
    """A homeowner's answer to one agenda item."""

    FOR = 'for'
    AGAINST = 'against'
    ABSTAIN = 'abstain'


class ThresholdPolicy(str, Enum):
    """Minimum share of "for" votes an agenda item needs to pass."""

    SIMPLE_MAJORITY = 'simple_majority'
    QUALIFIED_MAJORITY = 'qualified_majority'
    TWO_THIRDS = 'two_thirds'
    THREE_QUARTERS = 'three_quarters'
    UNANIMOUS = 'unanimous'

    @property
    def percent(self) -> float:
        return _THRESHOLD_PERCENT[self]

    def label(self, locale: str = 'ru') -> str:
        """Human-readable policy name in the given locale."""
        labels = _THRESHOLD_LABELS[self]
        return labels.get(locale, labels['ru'])


_THRESHOLD_PERCENT: dict[ThresholdPolicy, float] = {
    ThresholdPolicy.SIMPLE_MAJORITY: 50.0,
    ThresholdPolicy.QUALIFIED_MAJORITY: 60.0,
    ThresholdPolicy.TWO_THIRDS: 66.67,
    ThresholdPolicy.THREE_QUARTERS: 75.0,
    ThresholdPolicy.UNANIMOUS: 100.0,
}

_THRESHOLD_LABELS: dict[ThresholdPolicy, dict[str, str]] = {
    ThresholdPolicy.SIMPLE_MAJORITY: {
        'ru': 'Простое большинство (50%+1)',
        'uz': "Oddiy ko'pchilik (50%+1)",
    },
    ThresholdPolicy.QUALIFIED_MAJORITY: {
        'ru': 'Квалифицированное большинство (60%)',
        'uz': "Malakali ko'pchilik (60%)",
    },
    ThresholdPolicy.TWO_THIRDS: {
        'ru': 'Две трети (66.7%)',
        'uz': 'Uchdan ikki (66.7%)',
    },
    ThresholdPolicy.THREE_QUARTERS: {
        'ru': 'Три четверти (75%)',
        'uz': "To'rtdan uch (75%)",
    },
    ThresholdPolicy.UNANIMOUS: {
        'ru': 'Единогласно (100%)',
        'uz': 'Bir ovozdan (100%)',
    },
}


class Meeting(BaseModel):
    """A closed general meeting of homeowners."""

    id: str = Field(..., description='Meeting identifier')
    number: int = Field(..., description='Sequential protocol number')
    format: MeetingFormat = Field(default=MeetingFormat.OFFLINE)

    # Areas (sq.m)
    total_area: float = Field(default=0.0, description='Total area of all premises in the building')
    voted_area: float = Field(default=0.0, description='Area owned by homeowners who voted')

    # Quorum
    participation_percent: float = Field(default=0.0)
    quorum_percent: float = Field(default=50.0, description='Required participation share (%)')
    quorum_reached: bool = Field(default=False)
    participated_count: int = Field(default=0)
    total_eligible_count: int = Field(default=0)

    # Schedule and venue
    confirmed_date_time: datetime | None = None
    voting_opened_at: datetime | None = None
    location: str | None = None
    organizer_name: str | None = None
    building_address: str | None = Field(
        default=None,
        validation_alias=AliasChoices('building_address', 'buildingAddress'),
    )

    @property
    def held_at(self) -> datetime | None:
        """The confirmed date, falling back to the voting start."""
        return self.confirmed_date_time or self.voting_opened_at


class AgendaItem(BaseModel):
    """One question on the meeting agenda with its pre-aggregated result."""

    id: str = Field(..., description='Agenda item identifier')
    item_order: int = Field(default=0, description='Position on the agenda')
    title: str = Field(..., description='Question put to the vote')
    description: str | None = Field(default=None, description='Proposal text read out before voting')
    threshold: ThresholdPolicy = Field(default=ThresholdPolicy.SIMPLE_MAJORITY)

    votes_for_area: float = Field(default=0.0)
    votes_against_area: float = Field(default=0.0)
    votes_abstain_area: float = Field(default=0.0)


class VoteRecord(BaseModel):
    """A single homeowner's recorded vote."""

    voter_id: str = Field(..., description='Homeowner identifier')
    voter_name: str = Field(..., description='Full name as shown in the registry')
    apartment_number: str | None = Field(default=None)
    vote_weight: float = Field(default=0.0, description='Owned area counted for this vote (sq.m)')
    choice: VoteChoice = Field(..., description='for / against / abstain')
    voted_at: datetime = Field(..., description='When the vote was cast')
    comment: str | None = Field(default=None, description='Free-text justification left by the voter')

    @property
    def has_comment(self) -> bool:
        return bool(self.comment and self.comment.strip())

    model_config = {'coerce_numbers_to_str': True}
