"""
Meeting Protocol Generator

Tabulates area-weighted homeowner votes and packages the minutes of a
general meeting as a .docx document with per-voter QR signatures.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .pipeline import (
    ProtocolGenerator,
    TallyEngine,
    TallyResult,
    QRSigner,
    DocumentComposer,
    PackageWriter,
)
from .models import (
    AgendaItem,
    CompanyProfile,
    Meeting,
    ProtocolDocument,
    ProtocolInput,
    ThresholdPolicy,
    VoteChoice,
    VoteRecord,
)
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    PipelineTimer,
)
from .errors import (
    MeetingProtocolError,
    ProtocolGenerationError,
    InputDataError,
    TallyError,
    CompositionError,
    PackagingError,
    RenderError,
    PartialSuccessResult,
)

__all__ = [
    # Version
    '__version__',
    # Orchestrator
    'ProtocolGenerator',
    # Components
    'TallyEngine',
    'TallyResult',
    'QRSigner',
    'DocumentComposer',
    'PackageWriter',
    # Models
    'AgendaItem',
    'CompanyProfile',
    'Meeting',
    'ProtocolDocument',
    'ProtocolInput',
    'ThresholdPolicy',
    'VoteChoice',
    'VoteRecord',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'PipelineTimer',
    # Errors
    'MeetingProtocolError',
    'ProtocolGenerationError',
    'InputDataError',
    'TallyError',
    'CompositionError',
    'PackagingError',
    'RenderError',
    'PartialSuccessResult',
]
