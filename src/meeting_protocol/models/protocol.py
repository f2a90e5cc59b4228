"""
Input bundle and output document of one protocol generation run.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from .meeting import AgendaItem, Meeting, VoteRecord

DOCX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'


class ProtocolInput(BaseModel):
    """
    Everything the generator needs, as exported by the meeting workflow.

    `vote_records` is the full registry in its original order; relationship
    ids and media paths are derived from positions in this list.
    `votes_by_item` groups the same records per agenda item id.
    """

    meeting: Meeting
    agenda_items: list[AgendaItem] = Field(default_factory=list)
    vote_records: list[VoteRecord] = Field(default_factory=list)
    votes_by_item: dict[str, list[VoteRecord]] = Field(default_factory=dict)
    protocol_hash: str | None = Field(default=None, description='Integrity hash printed in the footer')
    locale: Literal['ru', 'uz'] = Field(default='ru')

    def votes_for(self, item: AgendaItem) -> list[VoteRecord]:
        """Vote records cast on one agenda item (empty when none)."""
        return self.votes_by_item.get(item.id, [])

    @property
    def address(self) -> str:
        return self.meeting.building_address or ''


@dataclass
class ProtocolDocument:
    """A generated protocol ready to be downloaded or saved."""

    content: bytes
    filename: str
    media_type: str = DOCX_MEDIA_TYPE

    # Voters whose QR receipt could not be rendered (shown unsigned)
    unsigned_voter_ids: list[str] = field(default_factory=list)

    # Timing
    processing_time_ms: int | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.content)

    def save(self, directory: str | Path) -> Path:
        """Write the package into `directory` and return the file path."""
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / self.filename
        path.write_bytes(self.content)
        return path

    def to_dict(self) -> dict[str, Any]:
        """Convert metadata (not content) to a dictionary for logging."""
        return {
            'filename': self.filename,
            'media_type': self.media_type,
            'size': self.size,
            'unsigned_voter_ids': self.unsigned_voter_ids,
            'processing_time_ms': self.processing_time_ms,
            'stage_timings': self.stage_timings,
        }
