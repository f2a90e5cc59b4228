"""
Locale labels and date formatting for protocol documents.

Two locales are supported, matching the languages meetings are entered in:
Russian (`ru`, default) and Uzbek Latin (`uz`).
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from .models.meeting import MeetingFormat, VoteChoice

DEFAULT_LOCALE = 'ru'
PLACEHOLDER = '___'

MONTHS_GENITIVE: dict[str, tuple[str, ...]] = {
    'ru': (
        'января', 'февраля', 'марта', 'апреля', 'мая', 'июня',
        'июля', 'августа', 'сентября', 'октября', 'ноября', 'декабря',
    ),
    'uz': (
        'yanvar', 'fevral', 'mart', 'aprel', 'may', 'iyun',
        'iyul', 'avgust', 'sentabr', 'oktabr', 'noyabr', 'dekabr',
    ),
}

LABELS: dict[str, dict[str, str]] = {
    'ru': {
        'legal_header': 'Закон РУз «Об управлении многоквартирными домами»',
        'title': 'ПРОТОКОЛ № {number}/{year}',
        'subtitle': 'общего собрания собственников помещений',
        'subtitle_address': 'многоквартирного дома по адресу:',
        'held_as': 'проведённого в форме {form} голосования',
        'form_online': 'заочной',
        'form_hybrid': 'очно-заочной',
        'form_offline': 'очной',
        'date': 'Дата проведения: ',
        'time': 'Время: ',
        'venue': 'Место проведения: ',
        'quorum': 'КВОРУМ:',
        'total_area': 'Общая площадь помещений в доме: {area} кв.м',
        'voted_area': 'Площадь помещений проголосовавших собственников: {area} кв.м',
        'participation': 'Процент участия: {percent}%',
        'participants': 'Количество проголосовавших: {count} из {total} собственников',
        'quorum_reached': 'Кворум ИМЕЕТСЯ (требуется {percent}%)',
        'quorum_missing': 'Кворум ОТСУТСТВУЕТ (требуется {percent}%)',
        'agenda': 'ПОВЕСТКА ДНЯ:',
        'chair_title': 'Избрание Председателя и Секретаря собрания',
        'chair_heard': 'СЛУШАЛИ: Предложение об избрании Председателя и Секретаря собрания '
                       'из числа присутствующих собственников помещений.',
        'chair_proposed': 'ПРЕДЛОЖЕНО: Избрать Председателем собрания представителя УК, '
                          'Секретарём - {organizer}.',
        'chair_default_organizer': 'представителя УК',
        'chair_decision': 'РЕШЕНИЕ: Избрать Председателя и Секретаря собрания. Решение принято.',
        'heard': 'СЛУШАЛИ: {text}',
        'voted': 'ГОЛОСОВАЛИ:',
        'decision_approved': 'РЕШЕНИЕ: Решение принято.',
        'decision_rejected': 'РЕШЕНИЕ: Решение не принято.',
        'threshold': 'Порог принятия решения: {policy}',
        'column_for': 'ЗА',
        'column_against': 'ПРОТИВ',
        'column_abstain': 'ВОЗДЕРЖАЛИСЬ',
        'area_value': '{area} кв.м',
        'participant_votes': 'Голоса участников:',
        'column_number': '№',
        'column_name': 'ФИО',
        'column_owner_name': 'ФИО собственника',
        'column_apartment': 'Кв.',
        'column_area': 'Площадь',
        'column_date': 'Дата',
        'column_vote': 'Голос',
        'column_justification': 'Обоснование',
        'column_signature': 'Э-подпись',
        'company_caption': 'Управляющая компания',
        'appendix_title': 'ПРИЛОЖЕНИЕ № 1',
        'appendix_subtitle': 'к Протоколу № {number}/{year}',
        'appendix_registry': 'РЕЕСТР УЧАСТНИКОВ ГОЛОСОВАНИЯ С ЭЛЕКТРОННЫМИ ПОДПИСЯМИ',
        'footer_generated': 'Протокол сформирован автоматически системой УК «{company}»',
        'footer_timestamp': 'Дата формирования: {timestamp}',
        'footer_hash': 'Хеш документа: {hash}',
        'address_missing': 'Адрес не указан',
        'filename_prefix': 'Протокол',
        # QR payload lines
        'qr_company': 'Компания: {value}',
        'qr_address': 'Адрес: {value}',
        'qr_bank': 'Банк: {value}',
        'qr_account': 'Р/С: {value}',
        'qr_inn': 'ИНН: {value}',
        'qr_oked': 'ОКЭД: {value}',
        'qr_mfo': 'МФО: {value}',
        'qr_signature': 'ЭЛЕКТРОННАЯ ПОДПИСЬ',
        'qr_protocol': 'Протокол: {value}',
        'qr_voter': 'ФИО: {value}',
        'qr_apartment': 'Квартира: {value}',
        'qr_area': 'Площадь: {value} кв.м',
        'qr_vote': 'Голос: {value}',
        'qr_date': 'Дата: {value}',
    },
    'uz': {
        'legal_header': "O'zR «Ko'p kvartirali uylarni boshqarish to'g'risida»gi Qonuni",
        'title': 'BAYONNOMA № {number}/{year}',
        'subtitle': 'joy mulkdorlari umumiy yig\'ilishining',
        'subtitle_address': 'ko\'p kvartirali uy manzili:',
        'held_as': '{form} ovoz berish shaklida o\'tkazilgan',
        'form_online': 'sirtqi',
        'form_hybrid': 'aralash',
        'form_offline': 'yuzma-yuz',
        'date': "O'tkazilgan sana: ",
        'time': 'Vaqt: ',
        'venue': "O'tkazilgan joy: ",
        'quorum': 'KVORUM:',
        'total_area': 'Uydagi xonalarning umumiy maydoni: {area} kv.m',
        'voted_area': 'Ovoz bergan mulkdorlar xonalarining maydoni: {area} kv.m',
        'participation': 'Ishtirok foizi: {percent}%',
        'participants': 'Ovoz berganlar soni: {total} mulkdordan {count} nafari',
        'quorum_reached': 'Kvorum MAVJUD ({percent}% talab qilinadi)',
        'quorum_missing': "Kvorum YO'Q ({percent}% talab qilinadi)",
        'agenda': 'KUN TARTIBI:',
        'chair_title': "Yig'ilish raisi va kotibini saylash",
        'chair_heard': "TINGLANDI: Hozir bo'lgan mulkdorlar orasidan yig'ilish raisi va kotibini "
                       'saylash haqidagi taklif.',
        'chair_proposed': "TAKLIF ETILDI: Yig'ilish raisi etib BK vakilini, kotib etib - {organizer} saylash.",
        'chair_default_organizer': 'BK vakilini',
        'chair_decision': "QAROR: Yig'ilish raisi va kotibi saylansin. Qaror qabul qilindi.",
        'heard': 'TINGLANDI: {text}',
        'voted': 'OVOZ BERDILAR:',
        'decision_approved': 'QAROR: Qaror qabul qilindi.',
        'decision_rejected': 'QAROR: Qaror qabul qilinmadi.',
        'threshold': 'Qaror qabul qilish chegarasi: {policy}',
        'column_for': 'ROZI',
        'column_against': 'QARSHI',
        'column_abstain': 'BETARAF',
        'area_value': '{area} kv.m',
        'participant_votes': 'Ishtirokchilar ovozlari:',
        'column_number': '№',
        'column_name': 'F.I.Sh.',
        'column_owner_name': 'Mulkdorning F.I.Sh.',
        'column_apartment': 'Xon.',
        'column_area': 'Maydon',
        'column_date': 'Sana',
        'column_vote': 'Ovoz',
        'column_justification': 'Asoslash',
        'column_signature': 'E-imzo',
        'company_caption': 'Boshqaruv kompaniyasi',
        'appendix_title': '1-ILOVA',
        'appendix_subtitle': '{number}/{year}-sonli Bayonnomaga',
        'appendix_registry': 'ELEKTRON IMZOLI OVOZ BERISH ISHTIROKCHILARI REESTRI',
        'footer_generated': 'Bayonnoma «{company}» BK tizimi tomonidan avtomatik shakllantirildi',
        'footer_timestamp': 'Shakllantirilgan sana: {timestamp}',
        'footer_hash': 'Hujjat xeshi: {hash}',
        'address_missing': "Manzil ko'rsatilmagan",
        'filename_prefix': 'Bayonnoma',
        'qr_company': 'Kompaniya: {value}',
        'qr_address': 'Manzil: {value}',
        'qr_bank': 'Bank: {value}',
        'qr_account': 'H/R: {value}',
        'qr_inn': 'STIR: {value}',
        'qr_oked': 'IFUT: {value}',
        'qr_mfo': 'MFO: {value}',
        'qr_signature': 'ELEKTRON IMZO',
        'qr_protocol': 'Bayonnoma: {value}',
        'qr_voter': 'F.I.Sh.: {value}',
        'qr_apartment': 'Xonadon: {value}',
        'qr_area': 'Maydon: {value} kv.m',
        'qr_vote': 'Ovoz: {value}',
        'qr_date': 'Sana: {value}',
    },
}

# Full labels (item minutes, QR receipts) and abbreviated labels (registry)
CHOICE_LABELS: dict[str, dict[VoteChoice, str]] = {
    'ru': {
        VoteChoice.FOR: 'ЗА',
        VoteChoice.AGAINST: 'ПРОТИВ',
        VoteChoice.ABSTAIN: 'ВОЗДЕРЖАЛСЯ',
    },
    'uz': {
        VoteChoice.FOR: 'ROZI',
        VoteChoice.AGAINST: 'QARSHI',
        VoteChoice.ABSTAIN: 'BETARAF',
    },
}

CHOICE_SHORT_LABELS: dict[str, dict[VoteChoice, str]] = {
    'ru': {
        VoteChoice.FOR: 'ЗА',
        VoteChoice.AGAINST: 'ПРОТИВ',
        VoteChoice.ABSTAIN: 'ВОЗДЕРЖ.',
    },
    'uz': {
        VoteChoice.FOR: 'ROZI',
        VoteChoice.AGAINST: 'QARSHI',
        VoteChoice.ABSTAIN: 'BETARAF',
    },
}


def _locale(locale: str | None) -> str:
    return locale if locale in LABELS else DEFAULT_LOCALE


def t(locale: str | None, key: str, **values: object) -> str:
    """Look up a label and substitute its placeholders."""
    template = LABELS[_locale(locale)][key]
    return template.format(**values) if values else template


def choice_label(locale: str | None, choice: VoteChoice, short: bool = False) -> str:
    table = CHOICE_SHORT_LABELS if short else CHOICE_LABELS
    return table[_locale(locale)][VoteChoice(choice)]


def meeting_form(locale: str | None, fmt: MeetingFormat) -> str:
    if fmt == MeetingFormat.ONLINE:
        return t(locale, 'form_online')
    if fmt == MeetingFormat.HYBRID:
        return t(locale, 'form_hybrid')
    return t(locale, 'form_offline')


def to_display_tz(value: datetime, tz_name: str | None) -> datetime:
    """Convert aware datetimes into the display zone; naive ones are kept as is."""
    if tz_name and value.tzinfo is not None:
        return value.astimezone(ZoneInfo(tz_name))
    return value


def format_long_date(value: datetime | None, locale: str | None = None, tz_name: str | None = None) -> str:
    """`5 марта 2026` style date; placeholder when unknown."""
    if value is None:
        return PLACEHOLDER
    value = to_display_tz(value, tz_name)
    month = MONTHS_GENITIVE[_locale(locale)][value.month - 1]
    return f"{value.day} {month} {value.year}"


def format_time(value: datetime | None, tz_name: str | None = None) -> str:
    if value is None:
        return PLACEHOLDER
    return to_display_tz(value, tz_name).strftime('%H:%M')


def format_short_date(value: datetime, tz_name: str | None = None) -> str:
    return to_display_tz(value, tz_name).strftime('%d.%m.%Y')


def format_timestamp(value: datetime, tz_name: str | None = None) -> str:
    return to_display_tz(value, tz_name).strftime('%d.%m.%Y, %H:%M:%S')
