"""Item Routes - PUT/GET of signed item bytes and the single-item JSON view.

Invariants:
    - PUT returns 201 with "OK. Received N bytes." or 202 "Item already exists";
      every rejection is an IngestionError rendered by the global handler
    - GET .../proto3 returns the exact stored bytes; clients re-verify the signature
    - Routes never contain pipeline logic (delegate to services)
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import PlainTextResponse
from starlette.requests import ClientDisconnect

from feedserver.api.dependencies import get_backend, path_signature, path_user
from feedserver.core.domain_types import PutOutcome
from feedserver.core.identity import Signature, UserID
from feedserver.core.repository_protocols import Backend
from feedserver.schemas.pages import ItemResponse
from feedserver.services.put_item import put_item
from feedserver.services.read_items import get_item, get_item_bytes

logger = logging.getLogger(__name__)
router = APIRouter(tags=["items"])

PROTOBUF_MEDIA_TYPE = "application/protobuf3"


@router.put(
    "/u/{user_id}/i/{signature}/proto3",
    status_code=status.HTTP_201_CREATED,
    response_class=PlainTextResponse,
)
async def put_item_bytes(
    request: Request,
    user: UserID = Depends(path_user),
    signature: Signature = Depends(path_signature),
    backend: Backend = Depends(get_backend),
):
    """Accept a signed protobuf Item."""
    result = await put_item(
        backend, user, signature,
        request.headers.get("content-length"),
        request.stream(),
        stream_errors=(ClientDisconnect,),
    )
    code = (
        status.HTTP_201_CREATED if result.outcome == PutOutcome.CREATED
        else status.HTTP_202_ACCEPTED
    )
    return PlainTextResponse(result.message, status_code=code)


@router.get("/u/{user_id}/i/{signature}/proto3")
async def get_item_proto(
    user: UserID = Depends(path_user),
    signature: Signature = Depends(path_signature),
    backend: Backend = Depends(get_backend),
):
    """Exact stored bytes of one item."""
    data = await get_item_bytes(backend, user, signature)
    return Response(content=data, media_type=PROTOBUF_MEDIA_TYPE)


@router.get("/u/{user_id}/i/{signature}/", response_model=ItemResponse)
async def show_item(
    user: UserID = Depends(path_user),
    signature: Signature = Depends(path_signature),
    backend: Backend = Depends(get_backend),
):
    """Decoded view of one item."""
    return ItemResponse.from_view(await get_item(backend, user, signature))
