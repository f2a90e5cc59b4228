"""
Pytest configuration and shared fixtures.

Key fixtures:
- company: operator profile for the company QR block
- meeting / agenda_items / vote_records: a small closed meeting
- protocol_input: the full bundle handed to the generator
- stub_signer: QRSigner replacement returning a fixed tiny PNG
"""

import base64
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from meeting_protocol.models import (
    AgendaItem,
    CompanyProfile,
    Meeting,
    MeetingFormat,
    ProtocolInput,
    VoteChoice,
    VoteRecord,
)

TASHKENT = timezone(timedelta(hours=5))

# 1x1 transparent PNG
TINY_PNG = base64.b64decode(
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII='
)
TINY_PNG_B64 = base64.b64encode(TINY_PNG).decode('ascii')


class StubSigner:
    """Drop-in QRSigner that records calls and can fail for chosen voters."""

    def __init__(self, fail_for: set[str] | None = None, company_fails: bool = False):
        self.fail_for = fail_for or set()
        self.company_fails = company_fails
        self.voter_calls: list[str] = []

    def render_company(self, company, locale='ru'):
        if self.company_fails:
            raise RuntimeError('encoder unavailable')
        return TINY_PNG_B64

    def render_voter(self, record, meeting_number, address, locale='ru', tz_name=None):
        self.voter_calls.append(record.voter_id)
        if record.voter_id in self.fail_for:
            raise ValueError(f'cannot encode {record.voter_id}')
        # Distinct bytes per voter so media entries can be told apart
        return base64.b64encode(TINY_PNG + record.voter_id.encode()).decode('ascii')


@pytest.fixture
def company() -> CompanyProfile:
    return CompanyProfile(
        name='OOO KAMIZO',
        address='г. Ташкент, ул. Махтумкули, 93/3',
        bank='Orient Finans',
        account='20208000805307918001',
        inn='307928888',
        oked='81100',
        mfo='01071',
    )


@pytest.fixture
def meeting() -> Meeting:
    return Meeting(
        id='mtg_001',
        number=7,
        format=MeetingFormat.OFFLINE,
        total_area=1000.0,
        voted_area=700.0,
        participation_percent=70.0,
        quorum_percent=50.0,
        quorum_reached=True,
        participated_count=3,
        total_eligible_count=5,
        confirmed_date_time=datetime(2026, 3, 5, 18, 30, tzinfo=TASHKENT),
        organizer_name='Каримова Д.А.',
        building_address='ул. Foo #5/A',
    )


@pytest.fixture
def agenda_items() -> list[AgendaItem]:
    return [
        AgendaItem(
            id='item_budget',
            item_order=1,
            title='Утверждение сметы',
            description='Смета на 2026 год',
            votes_for_area=600.0,
            votes_against_area=300.0,
            votes_abstain_area=100.0,
        ),
        AgendaItem(
            id='item_gate',
            item_order=2,
            title='Установка шлагбаума',
            votes_for_area=200.0,
            votes_against_area=400.0,
            votes_abstain_area=100.0,
        ),
    ]


@pytest.fixture
def vote_records() -> list[VoteRecord]:
    return [
        VoteRecord(
            voter_id='owner_1',
            voter_name='Алимов Рустам',
            apartment_number='12',
            vote_weight=300.0,
            choice=VoteChoice.FOR,
            voted_at=datetime(2026, 3, 5, 18, 40, tzinfo=TASHKENT),
        ),
        VoteRecord(
            voter_id='owner_2',
            voter_name='Petrova <Anna> & "Co"',
            apartment_number='7',
            vote_weight=300.0,
            choice=VoteChoice.AGAINST,
            voted_at=datetime(2026, 3, 5, 18, 45, 12, tzinfo=TASHKENT),
            comment="It's too expensive",
        ),
        VoteRecord(
            voter_id='owner_3',
            voter_name='Юсупов Б.',
            vote_weight=100.0,
            choice=VoteChoice.ABSTAIN,
            voted_at=datetime(2026, 3, 5, 19, 2, tzinfo=TASHKENT),
        ),
    ]


@pytest.fixture
def protocol_input(meeting, agenda_items, vote_records) -> ProtocolInput:
    return ProtocolInput(
        meeting=meeting,
        agenda_items=agenda_items,
        vote_records=vote_records,
        votes_by_item={'item_gate': vote_records[:2]},
        protocol_hash='abc123',
    )


@pytest.fixture
def stub_signer() -> StubSigner:
    return StubSigner()


@pytest.fixture
def generated_at() -> datetime:
    return datetime(2026, 3, 6, 9, 15, 0, tzinfo=TASHKENT)
