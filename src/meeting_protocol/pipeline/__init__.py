"""
Pipeline components for tallying, QR signing, composition and packaging.
"""

from .composer import DocumentComposer, escape_xml
from .generator import ProtocolGenerator
from .package_writer import (
    ImageReferences,
    MediaEntry,
    PackageWriter,
    RelationshipEntry,
    RelationshipIdAllocator,
    sanitize_filename_segment,
)
from .qr_signer import QROptions, QRSigner, company_payload, voter_payload
from .tally import MeetingQuorum, TallyEngine, TallyResult, TallySummary

__all__ = [
    # Orchestrator
    'ProtocolGenerator',
    # Tally
    'TallyEngine',
    'TallyResult',
    'TallySummary',
    'MeetingQuorum',
    # QR
    'QRSigner',
    'QROptions',
    'company_payload',
    'voter_payload',
    # Composition
    'DocumentComposer',
    'escape_xml',
    # Packaging
    'PackageWriter',
    'ImageReferences',
    'MediaEntry',
    'RelationshipEntry',
    'RelationshipIdAllocator',
    'sanitize_filename_segment',
]
