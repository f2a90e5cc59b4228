"""
WordprocessingML markup for the meeting protocol.

Builds `word/document.xml`:
1. Cover: legal header, title, address, meeting form, date/time/venue,
   quorum block and agenda list
2. Minutes: synthetic item 1 (chair & secretary election, always 100% "for"),
   then every agenda item numbered from 2 with its vote table, optional
   per-voter table and decision line
3. Company QR signature
4. Appendix: registry of voters with their QR receipts (or a check mark when
   the receipt could not be rendered)
5. Footer: generation timestamp and optional document hash

All text enters the markup through `_run`, which escapes it. There is no
other path for character data into the document.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

from .. import i18n
from ..models.company import CompanyProfile
from ..models.meeting import AgendaItem, VoteRecord
from ..models.protocol import ProtocolInput
from .tally import TallyResult, TallySummary

if TYPE_CHECKING:
    from .package_writer import ImageReferences

NS_DECLARATIONS = (
    'xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
    'xmlns:wp="http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing" '
    'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships" '
    'xmlns:pic="http://schemas.openxmlformats.org/drawingml/2006/picture"'
)

HEADER_FILL = 'E7E6E6'
QUORUM_OK_COLOR = '008000'
QUORUM_FAIL_COLOR = 'FF0000'
SIGNATURE_FALLBACK = '✓'

# Drawing sizes in EMU
COMPANY_QR_EXTENT = 900000
VOTER_QR_EXTENT = 600000
COMPANY_DOC_PR_ID = 999
VOTER_DOC_PR_BASE = 1000

_XML_ESCAPES = (
    ('&', '&amp;'),
    ('<', '&lt;'),
    ('>', '&gt;'),
    ('"', '&quot;'),
    ("'", '&apos;'),
)

# Control characters XML 1.0 does not allow anywhere in a document
_XML_FORBIDDEN_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')


def escape_xml(value: object) -> str:
    """
    Escape the five XML special characters. `&` goes first.

    Forbidden control characters become spaces so pasted text cannot break
    the markup.
    """
    text = '' if value is None else _XML_FORBIDDEN_RE.sub(' ', str(value))
    for char, entity in _XML_ESCAPES:
        text = text.replace(char, entity)
    return text


# =============================================================================
# Markup primitives
# =============================================================================


def _run_props(size: int | None, bold: bool, italic: bool, color: str | None) -> str:
    props = ''
    if bold:
        props += '<w:b/>'
    if italic:
        props += '<w:i/>'
    if color:
        props += f'<w:color w:val="{color}"/>'
    if size:
        props += f'<w:sz w:val="{size}"/>'
    return f'<w:rPr>{props}</w:rPr>' if props else ''


def _run(
    text: object,
    size: int | None = None,
    bold: bool = False,
    italic: bool = False,
    color: str | None = None,
) -> str:
    escaped = escape_xml(text)
    preserve = ' xml:space="preserve"' if escaped != escaped.strip() else ''
    return (
        f'<w:r>{_run_props(size, bold, italic, color)}'
        f'<w:t{preserve}>{escaped}</w:t></w:r>'
    )


def _paragraph(
    runs: str,
    size: int | None = None,
    bold: bool = False,
    italic: bool = False,
    color: str | None = None,
    align: str | None = None,
    before: int | None = None,
    after: int | None = None,
) -> str:
    props = ''
    if before is not None or after is not None:
        spacing = ''
        if before is not None:
            spacing += f' w:before="{before}"'
        if after is not None:
            spacing += f' w:after="{after}"'
        props += f'<w:spacing{spacing}/>'
    if align:
        props += f'<w:jc w:val="{align}"/>'
    props += _run_props(size, bold, italic, color)
    ppr = f'<w:pPr>{props}</w:pPr>' if props else ''
    return f'<w:p>{ppr}{runs}</w:p>'


def _text(text: object, size: int | None = None, bold: bool = False, italic: bool = False,
          color: str | None = None, align: str | None = None,
          before: int | None = None, after: int | None = None) -> str:
    """Single-run paragraph; run and paragraph share the formatting."""
    return _paragraph(
        _run(text, size=size, bold=bold, italic=italic, color=color),
        size=size, bold=bold, italic=italic, color=color,
        align=align, before=before, after=after,
    )


def _labelled(label: str, value: object, size: int = 22) -> str:
    """`Label: value` paragraph with a bold label."""
    return _paragraph(
        _run(label, size=size, bold=True) + _run(value, size=size),
        size=size,
    )


def _cell(width: int, content: str, shaded: bool = False, v_center: bool = False) -> str:
    props = f'<w:tcW w:w="{width}" w:type="dxa"/>'
    if shaded:
        props += f'<w:shd w:val="clear" w:color="auto" w:fill="{HEADER_FILL}"/>'
    if v_center:
        props += '<w:vAlign w:val="center"/>'
    return f'<w:tc><w:tcPr>{props}</w:tcPr>{content}</w:tc>'


def _header_cell(width: int, label: str, size: int) -> str:
    return _cell(width, _text(label, size=size, bold=True, align='center'), shaded=True)


def _table(widths: list[int], rows: list[str], centered: bool = True) -> str:
    border = 'w:val="single" w:sz="4" w:space="0" w:color="000000"'
    borders = ''.join(
        f'<w:{side} {border}/>'
        for side in ('top', 'left', 'bottom', 'right', 'insideH', 'insideV')
    )
    jc = '<w:jc w:val="center"/>' if centered else ''
    grid = ''.join(f'<w:gridCol w:w="{w}"/>' for w in widths)
    return (
        '<w:tbl>'
        f'<w:tblPr><w:tblW w:w="{sum(widths)}" w:type="dxa"/>{jc}'
        f'<w:tblBorders>{borders}</w:tblBorders></w:tblPr>'
        f'<w:tblGrid>{grid}</w:tblGrid>'
        + ''.join(rows)
        + '</w:tbl>'
    )


def _row(cells: list[str]) -> str:
    return '<w:tr>' + ''.join(cells) + '</w:tr>'


def _inline_image(rel_id: str, doc_pr_id: int, name: str, file_name: str, extent: int) -> str:
    """Inline picture run referencing a relationship id of the main part."""
    return (
        '<w:r><w:drawing>'
        '<wp:inline distT="0" distB="0" distL="0" distR="0">'
        f'<wp:extent cx="{extent}" cy="{extent}"/>'
        f'<wp:docPr id="{doc_pr_id}" name="{escape_xml(name)}"/>'
        '<a:graphic><a:graphicData uri="http://schemas.openxmlformats.org/drawingml/2006/picture">'
        '<pic:pic>'
        f'<pic:nvPicPr><pic:cNvPr id="0" name="{escape_xml(file_name)}"/><pic:cNvPicPr/></pic:nvPicPr>'
        f'<pic:blipFill><a:blip r:embed="{escape_xml(rel_id)}"/><a:stretch><a:fillRect/></a:stretch></pic:blipFill>'
        '<pic:spPr>'
        f'<a:xfrm><a:off x="0" y="0"/><a:ext cx="{extent}" cy="{extent}"/></a:xfrm>'
        '<a:prstGeom prst="rect"><a:avLst/></a:prstGeom>'
        '</pic:spPr>'
        '</pic:pic></a:graphicData></a:graphic>'
        '</wp:inline></w:drawing></w:r>'
    )


def _area(value: float) -> str:
    return f"{value:.2f}"


# =============================================================================
# Composer
# =============================================================================


class DocumentComposer:
    """
    Composes the protocol markup from tally results and image references.

    Usage:
        composer = DocumentComposer(company, tz_name='Asia/Tashkent')
        xml = composer.compose(protocol_input, summary, images, generated_at)
    """

    def __init__(
        self,
        company: CompanyProfile,
        tz_name: str | None = None,
        show_thresholds: bool = False,
    ):
        self.company = company
        self.tz_name = tz_name
        # Print each item's pass threshold when it decides the outcome
        self.show_thresholds = show_thresholds

    def compose(
        self,
        data: ProtocolInput,
        summary: TallySummary,
        images: ImageReferences,
        generated_at: datetime,
    ) -> str:
        """
        Build the complete `word/document.xml`.

        Args:
            data: Meeting, agenda, vote records and locale
            summary: Tally of every agenda item plus quorum
            images: Relationship ids of the company QR and rendered voter QRs
            generated_at: Generation time (protocol year and footer)

        Returns:
            Document markup as a string
        """
        body = ''.join([
            self.cover(data, summary, generated_at),
            self.minutes(data, summary),
            self.company_signature(data.locale, images.logo_id),
            self.appendix(data, images, generated_at),
            self.footer(data, generated_at),
            '<w:sectPr>'
            '<w:pgSz w:w="11906" w:h="16838"/>'
            '<w:pgMar w:top="1134" w:right="850" w:bottom="1134" w:left="1701" '
            'w:header="708" w:footer="708" w:gutter="0"/>'
            '</w:sectPr>',
        ])
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<w:document {NS_DECLARATIONS}><w:body>{body}</w:body></w:document>'
        )

    # -------------------------------------------------------------------------
    # Cover
    # -------------------------------------------------------------------------

    def cover(self, data: ProtocolInput, summary: TallySummary, generated_at: datetime) -> str:
        locale = data.locale
        meeting = data.meeting
        address = data.address or i18n.t(locale, 'address_missing')
        held_at = meeting.held_at
        quorum = summary.quorum
        quorum_color = QUORUM_OK_COLOR if quorum.quorum_reached else QUORUM_FAIL_COLOR
        quorum_key = 'quorum_reached' if quorum.quorum_reached else 'quorum_missing'

        parts = [
            _text(i18n.t(locale, 'legal_header'), size=20, italic=True, align='right'),
            _text(
                i18n.t(locale, 'title', number=meeting.number, year=generated_at.year),
                size=28, bold=True, align='center', before=400, after=200,
            ),
            _text(i18n.t(locale, 'subtitle'), size=24, bold=True, align='center'),
            _text(i18n.t(locale, 'subtitle_address'), size=24, bold=True, align='center'),
            _text(address, size=24, bold=True, align='center'),
            _text(
                i18n.t(locale, 'held_as', form=i18n.meeting_form(locale, meeting.format)),
                size=22, align='center',
            ),
            _paragraph(
                _run(i18n.t(locale, 'date'), size=22, bold=True)
                + _run(i18n.format_long_date(held_at, locale, self.tz_name), size=22),
                size=22, before=200,
            ),
            _labelled(i18n.t(locale, 'time'), i18n.format_time(held_at, self.tz_name)),
            _labelled(i18n.t(locale, 'venue'), meeting.location or address),
            _text(i18n.t(locale, 'quorum'), size=22, bold=True, before=200),
            _text(i18n.t(locale, 'total_area', area=_area(meeting.total_area)), size=22),
            _text(i18n.t(locale, 'voted_area', area=_area(meeting.voted_area)), size=22),
            _text(i18n.t(locale, 'participation', percent=f"{quorum.percent:.1f}"), size=22),
            _text(
                i18n.t(
                    locale, 'participants',
                    count=meeting.participated_count,
                    total=meeting.total_eligible_count,
                ),
                size=22,
            ),
            _text(
                i18n.t(locale, quorum_key, percent=f"{meeting.quorum_percent:g}"),
                size=22, bold=True, color=quorum_color,
            ),
            _text(i18n.t(locale, 'agenda'), size=24, bold=True, before=300, after=100),
            _text(f"1. {i18n.t(locale, 'chair_title')}", size=22),
        ]
        for number, item in enumerate(data.agenda_items, start=2):
            parts.append(_text(f"{number}. {item.title}", size=22))
        return ''.join(parts)

    # -------------------------------------------------------------------------
    # Minutes
    # -------------------------------------------------------------------------

    def minutes(self, data: ProtocolInput, summary: TallySummary) -> str:
        parts = [self.chair_election(data)]
        for number, item in enumerate(data.agenda_items, start=2):
            parts.append(
                self.agenda_item(
                    number=number,
                    item=item,
                    result=summary.for_item(item),
                    votes=data.votes_for(item),
                    locale=data.locale,
                )
            )
        return ''.join(parts)

    def chair_election(self, data: ProtocolInput) -> str:
        """Item 1: always recorded as unanimously approved by the voted area."""
        locale = data.locale
        organizer = data.meeting.organizer_name or i18n.t(locale, 'chair_default_organizer')
        unanimous = TallyResult(
            votes_for=data.meeting.voted_area,
            votes_against=0.0,
            votes_abstain=0.0,
            percent_for=100.0,
            percent_against=0.0,
            percent_abstain=0.0,
            threshold_met=True,
        )
        return ''.join([
            _text(f"1. {i18n.t(locale, 'chair_title')}", size=22, bold=True, before=200, after=100),
            _text(i18n.t(locale, 'chair_heard'), size=22),
            _text(i18n.t(locale, 'chair_proposed', organizer=organizer), size=22),
            _text(i18n.t(locale, 'voted'), size=22, bold=True),
            self.vote_table(unanimous, locale),
            _text(i18n.t(locale, 'chair_decision'), size=22, bold=True, before=100),
        ])

    def agenda_item(
        self,
        number: int,
        item: AgendaItem,
        result: TallyResult,
        votes: list[VoteRecord],
        locale: str,
    ) -> str:
        parts = [_text(f"{number}. {item.title}", size=22, bold=True, before=300, after=100)]
        if item.description:
            parts.append(_text(i18n.t(locale, 'heard', text=item.description), size=22))
        parts.append(_text(i18n.t(locale, 'voted'), size=22, bold=True))
        parts.append(self.vote_table(result, locale))
        parts.append(self.item_voters_table(votes, locale))
        if self.show_thresholds:
            parts.append(_text(
                i18n.t(locale, 'threshold', policy=item.threshold.label(locale)),
                size=20, italic=True, before=100,
            ))
        decision = 'decision_approved' if result.threshold_met else 'decision_rejected'
        parts.append(_text(i18n.t(locale, decision), size=22, bold=True, before=100))
        return ''.join(parts)

    def vote_table(self, result: TallyResult, locale: str) -> str:
        """Three columns: for / against / abstain, each with area and share."""
        width = 3000
        header = _row([
            _header_cell(width, i18n.t(locale, 'column_for'), 20),
            _header_cell(width, i18n.t(locale, 'column_against'), 20),
            _header_cell(width, i18n.t(locale, 'column_abstain'), 20),
        ])
        values = _row([
            _cell(
                width,
                _text(i18n.t(locale, 'area_value', area=_area(area)), size=20, align='center')
                + _text(f"({percent:.1f}%)", size=20, align='center'),
            )
            for area, percent in (
                (result.votes_for, result.percent_for),
                (result.votes_against, result.percent_against),
                (result.votes_abstain, result.percent_abstain),
            )
        ])
        return _table([width] * 3, [header, values])

    def item_voters_table(self, votes: list[VoteRecord], locale: str) -> str:
        """Per-voter breakdown of one item; adds a justification column when any voter commented."""
        if not votes:
            return ''

        has_comments = any(v.has_comment for v in votes)
        name_width = 2500 if has_comments else 3500
        widths = [500, name_width, 800, 1200, 1500]
        headers = ['column_number', 'column_name', 'column_apartment', 'column_area', 'column_vote']
        if has_comments:
            widths.append(4000)
            headers.append('column_justification')

        rows = [_row([
            _header_cell(w, i18n.t(locale, key), 16) for w, key in zip(widths, headers)
        ])]
        for ordinal, vote in enumerate(votes, start=1):
            cells = [
                _cell(500, _text(ordinal, size=16, align='center')),
                _cell(name_width, _text(vote.voter_name, size=16)),
                _cell(800, _text(vote.apartment_number or '-', size=16, align='center')),
                _cell(1200, _text(_area(vote.vote_weight), size=16, align='center')),
                _cell(1500, _text(i18n.choice_label(locale, vote.choice), size=16, align='center')),
            ]
            if has_comments:
                cells.append(_cell(4000, _text((vote.comment or '').strip(), size=14, italic=True)))
            rows.append(_row(cells))

        caption = _text(i18n.t(locale, 'participant_votes'), size=18, italic=True, before=100)
        return caption + _table(widths, rows)

    # -------------------------------------------------------------------------
    # Signatures and appendix
    # -------------------------------------------------------------------------

    def company_signature(self, locale: str, logo_id: str) -> str:
        image = _inline_image(
            rel_id=logo_id,
            doc_pr_id=COMPANY_DOC_PR_ID,
            name='Company QR Code',
            file_name='company_qr.png',
            extent=COMPANY_QR_EXTENT,
        )
        return ''.join([
            _paragraph(image, align='center', before=400),
            _text(i18n.t(locale, 'company_caption'), size=20, bold=True, align='center'),
            _text(self.company.name, size=18, align='center'),
        ])

    def appendix(self, data: ProtocolInput, images: ImageReferences, generated_at: datetime) -> str:
        locale = data.locale
        number = data.meeting.number
        return ''.join([
            '<w:p><w:r><w:br w:type="page"/></w:r></w:p>',
            _text(i18n.t(locale, 'appendix_title'), size=24, bold=True, align='center'),
            _text(
                i18n.t(locale, 'appendix_subtitle', number=number, year=generated_at.year),
                size=22, bold=True, align='center',
            ),
            _text(i18n.t(locale, 'appendix_registry'), size=22, bold=True, align='center'),
            _paragraph('', before=200),
            self.registry_table(data.vote_records, images, locale),
        ])

    def registry_table(
        self,
        records: list[VoteRecord],
        images: ImageReferences,
        locale: str,
    ) -> str:
        """Signature registry: one row per vote record in input order."""
        widths = [500, 2800, 800, 1200, 1400, 1400, 1400]
        headers = [
            'column_number', 'column_owner_name', 'column_apartment', 'column_area',
            'column_date', 'column_vote', 'column_signature',
        ]
        rows = [_row([
            _header_cell(w, i18n.t(locale, key), 16) for w, key in zip(widths, headers)
        ])]

        for index, record in enumerate(records):
            rel_id = images.voter_ids.get(index)
            if rel_id is not None:
                signature = _inline_image(
                    rel_id=rel_id,
                    doc_pr_id=VOTER_DOC_PR_BASE + index,
                    name=f'QR Signature {index}',
                    file_name=f'voter_qr_{index}.png',
                    extent=VOTER_QR_EXTENT,
                )
            else:
                signature = _run(SIGNATURE_FALLBACK)

            rows.append(_row([
                _cell(500, _text(index + 1, size=16, align='center')),
                _cell(2800, _text(record.voter_name, size=16)),
                _cell(800, _text(record.apartment_number or '-', size=16, align='center')),
                _cell(1200, _text(_area(record.vote_weight), size=16, align='center')),
                _cell(1400, _text(
                    i18n.format_short_date(record.voted_at, self.tz_name), size=16, align='center',
                )),
                _cell(1400, _text(
                    i18n.choice_label(locale, record.choice, short=True), size=16, align='center',
                )),
                _cell(1400, _paragraph(signature, align='center'), v_center=True),
            ]))

        return _table(widths, rows, centered=False)

    def footer(self, data: ProtocolInput, generated_at: datetime) -> str:
        locale = data.locale
        parts = [
            _text(
                i18n.t(locale, 'footer_generated', company=self.company.name),
                size=18, italic=True, before=300,
            ),
            _text(
                i18n.t(
                    locale, 'footer_timestamp',
                    timestamp=i18n.format_timestamp(generated_at, self.tz_name),
                ),
                size=18, italic=True,
            ),
        ]
        if data.protocol_hash:
            parts.append(_text(i18n.t(locale, 'footer_hash', hash=data.protocol_hash), size=18, italic=True))
        return ''.join(parts)
