"""
QR verification images.

Two payloads are rendered: the management company's requisites (once per
protocol) and one receipt per vote record, used as the voter's electronic
signature in the registry appendix. Rendering is a pure function of its
inputs, so receipts can be produced concurrently.
"""

import base64
from dataclasses import dataclass
from io import BytesIO

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M

from .. import i18n
from ..errors import RenderError, wrap_render_error
from ..models.company import CompanyProfile
from ..models.meeting import VoteRecord


@dataclass(frozen=True)
class QROptions:
    """Raster options: output width in pixels, quiet zone in modules, colours."""

    width: int = 150
    margin: int = 1
    dark: str = '#1f2937'
    light: str = '#ffffff'


COMPANY_QR_OPTIONS = QROptions(width=150)
VOTER_QR_OPTIONS = QROptions(width=80)


def company_payload(company: CompanyProfile, locale: str = 'ru') -> str:
    """Company verification block: one requisite per line."""
    return '\n'.join([
        i18n.t(locale, 'qr_company', value=company.name),
        i18n.t(locale, 'qr_address', value=company.address),
        i18n.t(locale, 'qr_bank', value=company.bank),
        i18n.t(locale, 'qr_account', value=company.account),
        i18n.t(locale, 'qr_inn', value=company.inn),
        i18n.t(locale, 'qr_oked', value=company.oked),
        i18n.t(locale, 'qr_mfo', value=company.mfo),
    ])


def voter_payload(
    record: VoteRecord,
    meeting_number: int,
    address: str,
    locale: str = 'ru',
    tz_name: str | None = None,
) -> str:
    """Vote receipt encoded into a voter's signature QR."""
    return '\n'.join([
        i18n.t(locale, 'qr_signature'),
        i18n.t(locale, 'qr_protocol', value=meeting_number),
        i18n.t(locale, 'qr_voter', value=record.voter_name),
        i18n.t(locale, 'qr_apartment', value=record.apartment_number or '-'),
        i18n.t(locale, 'qr_area', value=f"{record.vote_weight:.2f}"),
        i18n.t(locale, 'qr_vote', value=i18n.choice_label(locale, record.choice)),
        i18n.t(locale, 'qr_date', value=i18n.format_timestamp(record.voted_at, tz_name)),
        i18n.t(locale, 'qr_address', value=address),
    ])


class QRSigner:
    """Encodes text payloads into base64 PNG QR codes."""

    def __init__(self, error_correction: int = ERROR_CORRECT_M):
        self.error_correction = error_correction

    def render(self, payload: str, options: QROptions = COMPANY_QR_OPTIONS) -> str:
        """
        Render a payload as a square PNG.

        Args:
            payload: Text to encode (UTF-8)
            options: Width, margin and colours

        Returns:
            Base64-encoded PNG bytes (no data-URL prefix)

        Raises:
            RenderError: If the payload cannot be encoded
        """
        if not payload:
            raise RenderError('QR payload is empty')

        try:
            qr = qrcode.QRCode(
                version=None,
                error_correction=self.error_correction,
                box_size=1,
                border=options.margin,
            )
            qr.add_data(payload.encode('utf-8'))
            qr.make(fit=True)

            image = qr.make_image(fill_color=options.dark, back_color=options.light).get_image()
            image = image.convert('RGB').resize(
                (options.width, options.width),
                Image.Resampling.NEAREST,
            )

            buffer = BytesIO()
            image.save(buffer, format='PNG')
        except Exception as e:
            raise wrap_render_error(e, context={'payload_length': len(payload)}) from e

        return base64.b64encode(buffer.getvalue()).decode('ascii')

    def render_company(self, company: CompanyProfile, locale: str = 'ru') -> str:
        return self.render(company_payload(company, locale), COMPANY_QR_OPTIONS)

    def render_voter(
        self,
        record: VoteRecord,
        meeting_number: int,
        address: str,
        locale: str = 'ru',
        tz_name: str | None = None,
    ) -> str:
        payload = voter_payload(record, meeting_number, address, locale, tz_name)
        return self.render(payload, VOTER_QR_OPTIONS)
