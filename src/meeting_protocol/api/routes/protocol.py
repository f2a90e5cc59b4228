"""POST /protocol: validate meeting data and return the generated .docx."""

from typing import Any
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from meeting_protocol.errors import ProtocolGenerationError
from meeting_protocol.models.protocol import ProtocolInput
from meeting_protocol.pipeline.package_writer import sanitize_filename_segment

from ..auth import verify_worker_token

logger = structlog.get_logger(__name__)

router = APIRouter()


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the UTF-8 name (RFC 5987)."""
    fallback = sanitize_filename_segment(filename.rsplit(".", 1)[0]).encode("ascii", "replace")
    ascii_name = fallback.decode("ascii").replace("?", "_") + ".docx"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.post("/protocol")
async def generate_protocol(
    payload: dict[str, Any],
    request: Request,
    _auth: None = Depends(verify_worker_token),
):
    """Generate the meeting protocol and return it as a download."""
    try:
        data = ProtocolInput.model_validate(payload)
    except Exception as e:
        raise HTTPException(status_code=422, detail=str(e))

    log = logger.bind(meeting_id=data.meeting.id, protocol_number=data.meeting.number)
    log.info("protocol.received", vote_records=len(data.vote_records))

    try:
        document = await request.app.state.generator.generate(
            data,
            trace_id=request.headers.get("x-trace-id"),
        )
    except ProtocolGenerationError as e:
        log.error("protocol.failed", error=str(e), error_type=type(e).__name__)
        return JSONResponse(
            status_code=500,
            content={"error": "Protocol generation failed", "success": False},
        )

    log.info("protocol.complete", **document.to_dict())
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={
            "Content-Disposition": content_disposition(document.filename),
            "X-Unsigned-Voters": str(len(document.unsigned_voter_ids)),
        },
    )
