"""
Data models for the meeting protocol generator.
"""

from .company import CompanyProfile
from .meeting import (
    AgendaItem,
    Meeting,
    MeetingFormat,
    ThresholdPolicy,
    VoteChoice,
    VoteRecord,
)
from .protocol import DOCX_MEDIA_TYPE, ProtocolDocument, ProtocolInput

__all__ = [
    'CompanyProfile',
    'AgendaItem',
    'Meeting',
    'MeetingFormat',
    'ThresholdPolicy',
    'VoteChoice',
    'VoteRecord',
    'DOCX_MEDIA_TYPE',
    'ProtocolDocument',
    'ProtocolInput',
]
