"""
Tests for the end-to-end protocol generator.

QR rendering is stubbed except in TestRealRenderer,
which runs the real qrcode renderer.
"""

import asyncio
import random
import re
import threading
import time
import xml.etree.ElementTree as ET
import zipfile
from io import BytesIO

import pytest

from conftest import StubSigner
from meeting_protocol.errors import (
    CompositionError,
    InputDataError,
    PackagingError,
    ProtocolGenerationError,
    TallyError,
)
from meeting_protocol.models import DOCX_MEDIA_TYPE, VoteRecord
from meeting_protocol.pipeline.generator import ProtocolGenerator
from meeting_protocol.pipeline.package_writer import DOCUMENT_PATH, DOCUMENT_RELS_PATH, PACKAGE_RELS_NS

W_NS = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'


def _open(content: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(BytesIO(content))


def _embeds(archive: zipfile.ZipFile) -> set[str]:
    return set(re.findall(r'r:embed="([^"]*)"', archive.read(DOCUMENT_PATH).decode('utf-8')))


def _manifest(archive: zipfile.ZipFile) -> dict[str, str]:
    root = ET.fromstring(archive.read(DOCUMENT_RELS_PATH))
    return {
        rel.get('Id'): rel.get('Target')
        for rel in root.iter(f'{{{PACKAGE_RELS_NS}}}Relationship')
    }


def _generator(company, signer, **kwargs) -> ProtocolGenerator:
    kwargs.setdefault('tz_name', 'Asia/Tashkent')
    kwargs.setdefault('max_concurrent_renders', 4)
    kwargs.setdefault('honor_item_thresholds', False)
    return ProtocolGenerator(company=company, signer=signer, **kwargs)


class SlowSigner(StubSigner):
    """Renders with random delays and tracks peak concurrency."""

    def __init__(self, seed: int = 0, **kwargs):
        super().__init__(**kwargs)
        self._random = random.Random(seed)
        self._lock = threading.Lock()
        self.in_flight = 0
        self.peak = 0

    def render_voter(self, record, meeting_number, address, locale='ru', tz_name=None):
        with self._lock:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            delay = self._random.uniform(0, 0.01)
        try:
            time.sleep(delay)
            return super().render_voter(record, meeting_number, address, locale, tz_name)
        finally:
            with self._lock:
                self.in_flight -= 1


class TestGenerate:
    """Successful generation."""

    @pytest.mark.asyncio
    async def test_generates_docx(self, company, protocol_input, stub_signer, generated_at):
        document = await _generator(company, stub_signer).generate(protocol_input, generated_at)

        assert document.media_type == DOCX_MEDIA_TYPE
        assert document.filename == 'Протокол_7_ул__Foo__5_A.docx'
        assert document.unsigned_voter_ids == []
        assert document.size > 0
        assert set(document.stage_timings) >= {'tally', 'company_qr', 'voter_qr', 'compose', 'package'}

        with _open(document.content) as archive:
            assert archive.testzip() is None
            manifest = _manifest(archive)
            assert manifest == {
                'rId1': 'media/company_qr.png',
                'rId2': 'media/voter_qr_0.png',
                'rId3': 'media/voter_qr_1.png',
                'rId4': 'media/voter_qr_2.png',
            }
            assert _embeds(archive) == set(manifest)
            for target in manifest.values():
                archive.getinfo(f'word/{target}')

    @pytest.mark.asyncio
    async def test_uzbek_filename(self, company, protocol_input, stub_signer, generated_at):
        data = protocol_input.model_copy(update={'locale': 'uz'})
        document = await _generator(company, stub_signer).generate(data, generated_at)

        assert document.filename.startswith('Bayonnoma_7_')

    @pytest.mark.asyncio
    async def test_missing_address(self, company, protocol_input, stub_signer, generated_at):
        meeting = protocol_input.meeting.model_copy(update={'building_address': None})
        data = protocol_input.model_copy(update={'meeting': meeting})
        document = await _generator(company, stub_signer).generate(data, generated_at)

        assert document.filename == 'Протокол_7_Адрес_не_указан.docx'

    @pytest.mark.asyncio
    async def test_no_vote_records(self, company, meeting, agenda_items, stub_signer, generated_at):
        from meeting_protocol.models import ProtocolInput

        data = ProtocolInput(meeting=meeting, agenda_items=agenda_items)
        document = await _generator(company, stub_signer).generate(data, generated_at)

        with _open(document.content) as archive:
            assert _manifest(archive) == {'rId1': 'media/company_qr.png'}
            assert _embeds(archive) == {'rId1'}

    @pytest.mark.asyncio
    async def test_identical_input_identical_bytes(self, company, protocol_input, generated_at):
        first = await _generator(company, StubSigner()).generate(protocol_input, generated_at)
        second = await _generator(company, StubSigner()).generate(protocol_input, generated_at)

        assert first.content == second.content

    @pytest.mark.asyncio
    async def test_render_order_does_not_change_output(self, company, protocol_input, generated_at):
        """Randomized completion order still yields the same package."""
        records = [
            VoteRecord(
                voter_id=f'owner_{i}',
                voter_name=f'Owner {i}',
                vote_weight=10.0,
                choice='for',
                voted_at=protocol_input.vote_records[0].voted_at,
            )
            for i in range(20)
        ]
        data = protocol_input.model_copy(update={'vote_records': records, 'votes_by_item': {}})

        outputs = []
        for seed in (1, 2, 3):
            signer = SlowSigner(seed=seed)
            document = await _generator(company, signer, max_concurrent_renders=5).generate(
                data, generated_at
            )
            outputs.append(document.content)
            assert signer.peak <= 5

        assert outputs[0] == outputs[1] == outputs[2]

    def test_threshold_mode_reaches_composer(self, company, stub_signer):
        assert _generator(company, stub_signer, honor_item_thresholds=True).composer.show_thresholds is True
        assert _generator(company, stub_signer).composer.show_thresholds is False

    def test_generate_sync(self, company, protocol_input, stub_signer, generated_at):
        document = _generator(company, stub_signer).generate_sync(protocol_input, generated_at)

        assert document.filename.endswith('.docx')


    @pytest.mark.asyncio
    async def test_control_characters_in_free_text(self, company, protocol_input, stub_signer, generated_at):
        """Pasted control characters in names and comments still yield a parseable package."""
        broken = protocol_input.vote_records[0].model_copy(
            update={'voter_name': 'Ivan\x01', 'comment': 'pasted\x0btext'}
        )
        records = [broken, *protocol_input.vote_records[1:]]
        item = protocol_input.agenda_items[0]
        meeting = protocol_input.meeting.model_copy(update={'location': 'Courtyard\x07'})
        data = protocol_input.model_copy(update={
            'meeting': meeting,
            'vote_records': records,
            'votes_by_item': {item.id: records},
        })

        document = await _generator(company, stub_signer).generate(data, generated_at)

        with _open(document.content) as archive:
            root = ET.fromstring(archive.read(DOCUMENT_PATH))
        texts = [node.text or '' for node in root.iter(f'{{{W_NS}}}t')]
        assert 'Ivan ' in texts
        assert 'pasted text' in texts
        assert 'Courtyard ' in texts
        assert document.unsigned_voter_ids == []


class TestPartialFailure:
    """A voter whose QR fails is shown unsigned; the document is still produced."""

    @pytest.mark.asyncio
    async def test_one_voter_fails(self, company, protocol_input, generated_at):
        signer = StubSigner(fail_for={'owner_2'})
        document = await _generator(company, signer).generate(protocol_input, generated_at)

        assert document.unsigned_voter_ids == ['owner_2']
        with _open(document.content) as archive:
            manifest = _manifest(archive)
            assert manifest == {
                'rId1': 'media/company_qr.png',
                'rId2': 'media/voter_qr_0.png',
                'rId3': 'media/voter_qr_2.png',
            }
            assert _embeds(archive) == set(manifest)
            assert 'word/media/voter_qr_1.png' not in archive.namelist()
            assert '✓' in archive.read(DOCUMENT_PATH).decode('utf-8')

    @pytest.mark.asyncio
    async def test_all_voters_fail(self, company, protocol_input, generated_at):
        signer = StubSigner(fail_for={'owner_1', 'owner_2', 'owner_3'})
        document = await _generator(company, signer).generate(protocol_input, generated_at)

        assert document.unsigned_voter_ids == ['owner_1', 'owner_2', 'owner_3']
        with _open(document.content) as archive:
            assert _embeds(archive) == {'rId1'}


class TestFatalFailure:
    """Any failure outside voter QR rendering aborts with no output."""

    @pytest.mark.asyncio
    async def test_company_qr_failure(self, company, protocol_input, generated_at):
        signer = StubSigner(company_fails=True)

        with pytest.raises(PackagingError):
            await _generator(company, signer).generate(protocol_input, generated_at)

    @pytest.mark.asyncio
    async def test_tally_failure(self, company, protocol_input, stub_signer, generated_at):
        generator = _generator(company, stub_signer)
        def broken(*args, **kwargs):
            raise ZeroDivisionError("float division by zero")

        generator.tally_engine.tally = broken

        with pytest.raises(TallyError):
            await generator.generate(protocol_input, generated_at)
        assert stub_signer.voter_calls == []

    @pytest.mark.asyncio
    async def test_composition_failure(self, company, protocol_input, stub_signer, generated_at):
        generator = _generator(company, stub_signer)

        def broken(*args, **kwargs):
            raise KeyError('label')

        generator.composer.footer = broken

        with pytest.raises(CompositionError):
            await generator.generate(protocol_input, generated_at)

    @pytest.mark.asyncio
    async def test_invalid_logo_data(self, company, protocol_input, generated_at):
        signer = StubSigner()
        signer.render_company = lambda company, locale='ru': '%%%'

        with pytest.raises(PackagingError):
            await _generator(company, signer).generate(protocol_input, generated_at)

    @pytest.mark.asyncio
    async def test_duplicate_item_ids(self, company, protocol_input, stub_signer, generated_at):
        items = protocol_input.agenda_items + [protocol_input.agenda_items[0]]
        data = protocol_input.model_copy(update={'agenda_items': items})

        with pytest.raises(InputDataError):
            await _generator(company, stub_signer).generate(data, generated_at)

    @pytest.mark.asyncio
    async def test_votes_for_unknown_item(self, company, protocol_input, stub_signer, generated_at):
        data = protocol_input.model_copy(
            update={'votes_by_item': {'missing': protocol_input.vote_records}}
        )

        with pytest.raises(InputDataError) as exc_info:
            await _generator(company, stub_signer).generate(data, generated_at)
        assert exc_info.value.context['item_ids'] == ['missing']

    @pytest.mark.asyncio
    async def test_errors_share_base(self, company, protocol_input, generated_at):
        with pytest.raises(ProtocolGenerationError):
            await _generator(company, StubSigner(company_fails=True)).generate(
                protocol_input, generated_at
            )


class TestRealRenderer:
    """Full run with the qrcode-backed signer."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, company, protocol_input, generated_at):
        generator = ProtocolGenerator(
            company=company,
            max_concurrent_renders=2,
            honor_item_thresholds=False,
            tz_name='Asia/Tashkent',
        )
        document = await generator.generate(protocol_input, generated_at)

        with _open(document.content) as archive:
            assert _embeds(archive) == set(_manifest(archive))
            assert archive.read('word/media/company_qr.png')[:8] == b'\x89PNG\r\n\x1a\n'
            ET.fromstring(archive.read(DOCUMENT_PATH))


class TestConcurrentGenerations:
    @pytest.mark.asyncio
    async def test_parallel_runs_are_independent(self, company, protocol_input, generated_at):
        """Two runs on one generator share no id allocator state."""
        generator = _generator(company, StubSigner())
        first, second = await asyncio.gather(
            generator.generate(protocol_input, generated_at),
            generator.generate(protocol_input.model_copy(update={'vote_records': []}), generated_at),
        )

        with _open(first.content) as archive:
            assert sorted(_manifest(archive)) == ['rId1', 'rId2', 'rId3', 'rId4']
        with _open(second.content) as archive:
            assert list(_manifest(archive)) == ['rId1']
