"""
Main orchestrator for meeting protocol generation.

Provides end-to-end processing:
1. Tally every agenda item and the meeting quorum
2. Render the company QR once
3. Render one QR receipt per vote record (bounded concurrency)
4. Assign relationship ids once all renders have settled
5. Compose the document markup
6. Assemble the package
7. Return the downloadable document

A voter whose receipt fails to render is shown unsigned; any other failure
aborts the run with a single error and no output.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

from .. import i18n
from ..config import config
from ..errors import (
    CompositionError,
    InputDataError,
    MeetingProtocolError,
    PackagingError,
    PartialSuccessResult,
    ProtocolGenerationError,
    RenderError,
    TallyError,
    wrap_render_error,
)
from ..logging import PipelineTimer, get_logger, logging_context
from ..models.company import CompanyProfile
from ..models.protocol import ProtocolDocument, ProtocolInput
from .composer import DocumentComposer
from .package_writer import PackageWriter, protocol_filename
from .qr_signer import QRSigner
from .tally import TallyEngine

logger = get_logger(__name__)


class ProtocolGenerator:
    """
    End-to-end protocol generation.

    Orchestrates:
    - TallyEngine: per-item results and quorum
    - QRSigner: company and voter QR images
    - DocumentComposer: document markup
    - PackageWriter: relationship ids and the .docx archive

    Usage:
        generator = ProtocolGenerator(company=config.company_profile())
        document = await generator.generate(protocol_input)
        document.save('out/')
    """

    def __init__(
        self,
        company: CompanyProfile,
        max_concurrent_renders: int | None = None,
        honor_item_thresholds: bool | None = None,
        tz_name: str | None = None,
        signer: QRSigner | None = None,
    ):
        """
        Initialize the generator.

        Args:
            company: Operator requisites for the company QR block and footer
            max_concurrent_renders: Upper bound on parallel voter QR renders
            honor_item_thresholds: Use each item's threshold policy instead
                                   of the flat majority rule
            tz_name: Zone used to display dates (None keeps datetimes as given)
            signer: QR renderer (replaceable in tests)
        """
        self.company = company
        self.max_concurrent_renders = max_concurrent_renders or config.MAX_CONCURRENT_RENDERS
        self.tz_name = tz_name
        self.tally_engine = TallyEngine(
            honor_item_thresholds=config.HONOR_ITEM_THRESHOLDS
            if honor_item_thresholds is None
            else honor_item_thresholds
        )
        self.signer = signer or QRSigner()
        self.composer = DocumentComposer(
            company,
            tz_name=tz_name,
            show_thresholds=self.tally_engine.honor_item_thresholds,
        )
        self.writer = PackageWriter()

    @classmethod
    def from_env(cls) -> ProtocolGenerator:
        """Create a generator from environment configuration."""
        return cls(
            company=config.company_profile(),
            max_concurrent_renders=config.MAX_CONCURRENT_RENDERS,
            honor_item_thresholds=config.HONOR_ITEM_THRESHOLDS,
            tz_name=config.DISPLAY_TIMEZONE,
        )

    async def generate(
        self,
        data: ProtocolInput,
        generated_at: datetime | None = None,
        trace_id: str | None = None,
    ) -> ProtocolDocument:
        """
        Generate the protocol document.

        Args:
            data: Finalized meeting, agenda and vote records
            generated_at: Generation time (defaults to now in the display zone)
            trace_id: Optional id propagated into logs

        Returns:
            ProtocolDocument with the .docx bytes and its file name

        Raises:
            InputDataError: If the input bundle is structurally unusable
            TallyError / CompositionError / PackagingError: On fatal failures
            ProtocolGenerationError: On any other failure
        """
        timer = PipelineTimer()
        generated_at = generated_at or self._now()
        meeting = data.meeting

        with logging_context(
            trace_id=trace_id,
            meeting_id=meeting.id,
            protocol_number=meeting.number,
        ):
            logger.info(
                "protocol_generation_started",
                agenda_items=len(data.agenda_items),
                vote_records=len(data.vote_records),
                locale=data.locale,
            )

            try:
                self._check_input(data)

                # Step 1: Tally
                with timer.stage("tally"):
                    try:
                        summary = self.tally_engine.tally(data.agenda_items, meeting)
                    except Exception as e:
                        raise TallyError(f"Vote tally failed: {e}") from e

                logger.info(
                    "tally_complete",
                    participation_percent=round(summary.quorum.percent, 2),
                    quorum_reached=summary.quorum.quorum_reached,
                )

                # Step 2: Company QR (required)
                with timer.stage("company_qr"):
                    try:
                        logo_image = await asyncio.to_thread(
                            self.signer.render_company, self.company, data.locale
                        )
                    except Exception as e:
                        raise PackagingError(f"Company QR could not be rendered: {e}") from e

                # Step 3: Voter QRs (partial failure tolerated)
                with timer.stage("voter_qr"):
                    voter_images, renders = await self._render_voter_qrs(data)

                if renders.failure_count:
                    logger.warning("voter_qr_partial_failure", **renders.to_dict())

                # Step 4: Relationship ids, strictly after all renders settled
                with timer.stage("assign_ids"):
                    images = self.writer.assign_image_ids(logo_image, voter_images)

                # Step 5: Markup
                with timer.stage("compose"):
                    try:
                        markup = self.composer.compose(data, summary, images, generated_at)
                    except MeetingProtocolError:
                        raise
                    except Exception as e:
                        raise CompositionError(f"Document composition failed: {e}") from e

                # Step 6: Package
                with timer.stage("package"):
                    content = self.writer.build(markup, images.media)

            except ProtocolGenerationError as e:
                logger.error(
                    "protocol_generation_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise
            except Exception as e:
                logger.error(
                    "protocol_generation_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise ProtocolGenerationError(
                    f"Protocol generation failed: {e}",
                    context={'meeting_id': meeting.id},
                ) from e

            # Step 7: Downloadable document
            address = data.address or i18n.t(data.locale, 'address_missing')
            document = ProtocolDocument(
                content=content,
                filename=protocol_filename(
                    i18n.t(data.locale, 'filename_prefix'), meeting.number, address
                ),
                unsigned_voter_ids=[r.item_id for r in renders.failed if r.item_id],
                processing_time_ms=int(timer.total_ms),
                stage_timings=timer.stages.copy(),
            )

            logger.info(
                "protocol_generation_complete",
                filename=document.filename,
                size=document.size,
                unsigned=len(document.unsigned_voter_ids),
                **timer.summary(),
            )
            return document

    def generate_sync(self, data: ProtocolInput, generated_at: datetime | None = None) -> ProtocolDocument:
        """Blocking wrapper around `generate` for callers without an event loop."""
        return asyncio.run(self.generate(data, generated_at=generated_at))

    async def _render_voter_qrs(
        self,
        data: ProtocolInput,
    ) -> tuple[list[str | None], PartialSuccessResult]:
        """
        Render every voter receipt with at most `max_concurrent_renders` in flight.

        Returns:
            Tuple of (images by vote-record position with None for failures,
            per-voter success bookkeeping)
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_renders)
        address = data.address or i18n.t(data.locale, 'address_missing')

        async def render_one(index: int) -> str:
            record = data.vote_records[index]
            async with semaphore:
                return await asyncio.to_thread(
                    self.signer.render_voter,
                    record,
                    data.meeting.number,
                    address,
                    data.locale,
                    self.tz_name,
                )

        outcomes = await asyncio.gather(
            *(render_one(i) for i in range(len(data.vote_records))),
            return_exceptions=True,
        )

        images: list[str | None] = []
        renders = PartialSuccessResult()
        for index, (record, outcome) in enumerate(zip(data.vote_records, outcomes)):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                error = outcome if isinstance(outcome, RenderError) else wrap_render_error(outcome)
                logger.warning(
                    "voter_qr_failed",
                    voter_id=record.voter_id,
                    position=index,
                    error=str(error),
                )
                renders.add_failure(error, item_id=record.voter_id, data={'position': index})
                images.append(None)
            else:
                renders.add_success(item_id=record.voter_id, data={'position': index})
                images.append(outcome)

        return images, renders

    def _check_input(self, data: ProtocolInput) -> None:
        item_ids = {item.id for item in data.agenda_items}
        if len(item_ids) != len(data.agenda_items):
            raise InputDataError(
                "Agenda item ids are not unique",
                context={'meeting_id': data.meeting.id},
            )
        unknown = sorted(set(data.votes_by_item) - item_ids)
        if unknown:
            raise InputDataError(
                "Votes grouped under unknown agenda items",
                context={'item_ids': unknown},
            )

    def _now(self) -> datetime:
        if self.tz_name:
            return datetime.now(ZoneInfo(self.tz_name))
        return datetime.now()
