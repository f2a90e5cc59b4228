"""
Tests for input and output models.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from meeting_protocol.models import (
    AgendaItem,
    Meeting,
    MeetingFormat,
    ProtocolDocument,
    ProtocolInput,
    ThresholdPolicy,
    VoteChoice,
    VoteRecord,
)

SAMPLE = Path(__file__).parent.parent / 'examples' / 'sample_meeting.json'


class TestMeeting:
    def test_camel_case_address_alias(self):
        meeting = Meeting.model_validate({'id': 'm', 'number': 1, 'buildingAddress': 'ул. Foo'})

        assert meeting.building_address == 'ул. Foo'

    def test_held_at_falls_back_to_voting_start(self, meeting):
        fallback = meeting.model_copy(update={'confirmed_date_time': None})

        assert fallback.held_at is None
        assert meeting.held_at == meeting.confirmed_date_time

    def test_defaults(self):
        meeting = Meeting(id='m', number=3)

        assert meeting.format == MeetingFormat.OFFLINE
        assert meeting.quorum_percent == 50.0
        assert meeting.total_area == 0.0


class TestAgendaItem:
    def test_default_threshold(self):
        item = AgendaItem(id='i', title='Q')

        assert item.threshold == ThresholdPolicy.SIMPLE_MAJORITY

    def test_threshold_labels(self):
        assert ThresholdPolicy.TWO_THIRDS.percent == 66.67
        assert ThresholdPolicy.TWO_THIRDS.label() == 'Две трети (66.7%)'
        assert ThresholdPolicy.UNANIMOUS.label('uz') == 'Bir ovozdan (100%)'
        assert ThresholdPolicy.UNANIMOUS.label('en') == 'Единогласно (100%)'


class TestVoteRecord:
    def test_numeric_apartment_coerced(self, vote_records):
        record = VoteRecord.model_validate({
            **vote_records[0].model_dump(),
            'apartment_number': 42,
        })

        assert record.apartment_number == '42'

    def test_invalid_choice_rejected(self, vote_records):
        with pytest.raises(ValidationError):
            VoteRecord.model_validate({**vote_records[0].model_dump(), 'choice': 'maybe'})

    @pytest.mark.parametrize("comment,expected", [(None, False), ('', False), ('  ', False), ('ok', True)])
    def test_has_comment(self, vote_records, comment, expected):
        record = vote_records[0].model_copy(update={'comment': comment})

        assert record.has_comment is expected


class TestProtocolInput:
    def test_votes_for_missing_item_is_empty(self, protocol_input):
        assert protocol_input.votes_for(protocol_input.agenda_items[0]) == []
        assert len(protocol_input.votes_for(protocol_input.agenda_items[1])) == 2

    def test_unsupported_locale_rejected(self, meeting):
        with pytest.raises(ValidationError):
            ProtocolInput(meeting=meeting, locale='en')

    def test_sample_file_loads(self):
        data = ProtocolInput.model_validate(json.loads(SAMPLE.read_text(encoding='utf-8')))

        assert data.meeting.number == 14
        assert data.vote_records[1].choice == VoteChoice.AGAINST
        assert data.agenda_items[1].threshold == ThresholdPolicy.TWO_THIRDS


class TestProtocolDocument:
    def test_save_and_to_dict(self, tmp_path):
        document = ProtocolDocument(content=b'PK', filename='Протокол_1_x.docx', unsigned_voter_ids=['v'])

        path = document.save(tmp_path / 'out')

        assert path.read_bytes() == b'PK'
        assert path.name == 'Протокол_1_x.docx'
        info = document.to_dict()
        assert info['size'] == 2
        assert info['unsigned_voter_ids'] == ['v']
        assert 'content' not in info
