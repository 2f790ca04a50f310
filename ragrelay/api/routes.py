"""Gateway routes: model listing, streamed chat relay and attachment upload."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse, Response, StreamingResponse

from ragrelay.gateway import CallerAborted, CancellationToken, ProxyGateway, UpstreamUnreachable
from ragrelay.models.schemas import Attachment, ErrorResponse, OutgoingRequest
from ragrelay.parsing.attachments import read_attachment
from ragrelay.parsing.pdf_parser import MAX_FILE_SIZE, PDFParseError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["gateway"])

# Same ceiling as the PDF parser
MAX_UPLOAD_SIZE = MAX_FILE_SIZE


def get_gateway(request: Request) -> ProxyGateway:
    """Return the gateway created by the application factory."""
    return request.app.state.gateway


def _bad_gateway(error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=ErrorResponse(error=str(error)).model_dump(),
    )


@router.get("/models")
async def list_models(gateway: ProxyGateway = Depends(get_gateway)) -> Response:
    """Relay the inference backend's model list unchanged.

    Returns:
        The backend status and JSON body verbatim, or 502 with ``{"error": ...}``
        when the backend cannot be reached.
    """
    try:
        reply = await gateway.list_models()
    except UpstreamUnreachable as e:
        return _bad_gateway(e)

    return Response(
        content=reply.body,
        status_code=reply.status_code,
        media_type=reply.media_type,
    )


@router.post("/chat")
async def chat(
    payload: OutgoingRequest,
    gateway: ProxyGateway = Depends(get_gateway),
) -> Response:
    """Forward a chat request and stream the backend response back.

    Status and content type come from the backend. A caller disconnect closes
    the relay early, which cancels the backend request.
    """
    token = CancellationToken()
    try:
        relay = await gateway.open_chat(payload, token)
    except UpstreamUnreachable as e:
        return _bad_gateway(e)
    except CallerAborted:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return StreamingResponse(
        relay.body,
        status_code=relay.status_code,
        media_type=relay.media_type,
        headers=relay.headers,
    )


@router.post("/attachments", response_model=Attachment)
async def upload_attachment(file: UploadFile) -> Attachment:
    """Read an uploaded file to text for use in the next chat turn.

    Raises:
        400: Missing filename or unreadable PDF.
        413: File exceeds 10MB limit.
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required",
        )

    content = await file.read()
    if len(content) > MAX_UPLOAD_SIZE:
        size_mb = len(content) / (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File size ({size_mb:.1f}MB) exceeds maximum allowed (10MB)",
        )

    try:
        attachment = read_attachment(file.filename, content)
    except PDFParseError as e:
        logger.warning(f"PDF parse error for {file.filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    logger.info(f"Read attachment {file.filename} ({len(attachment.text)} chars)")
    return attachment
