"""Feed Routes - homepage, user timeline, user feed, and profile.

Invariants:
    - All three feeds accept the same paging query (before, before_sig, count)
    - Feed pages always return 200, with `message` explaining an empty page
    - A missing profile is a 404
"""

from fastapi import APIRouter, Depends

from feedserver.api.dependencies import get_backend, pagination_params, path_user
from feedserver.core.identity import UserID
from feedserver.core.pagination import Pagination
from feedserver.core.repository_protocols import Backend
from feedserver.schemas.pages import PageResponse, ProfileResponse
from feedserver.services.read_items import (
    get_profile, homepage_page, user_feed_page, user_items_page,
)

router = APIRouter(tags=["feeds"])


@router.get("/", response_model=PageResponse)
async def homepage(
    options: Pagination = Depends(pagination_params),
    backend: Backend = Depends(get_backend),
):
    """Recent posts by users shown on this server's homepage."""
    return PageResponse.from_page(await homepage_page(backend, options))


@router.get("/u/{user_id}/", response_model=PageResponse)
async def user_items(
    user: UserID = Depends(path_user),
    options: Pagination = Depends(pagination_params),
    backend: Backend = Depends(get_backend),
):
    """One user's own posts."""
    return PageResponse.from_page(await user_items_page(backend, user, options))


@router.get("/u/{user_id}/feed/", response_model=PageResponse)
async def user_feed(
    user: UserID = Depends(path_user),
    options: Pagination = Depends(pagination_params),
    backend: Backend = Depends(get_backend),
):
    """Posts by a user and everyone their profile follows."""
    return PageResponse.from_page(await user_feed_page(backend, user, options))


@router.get("/u/{user_id}/profile/", response_model=ProfileResponse)
async def user_profile(
    user: UserID = Depends(path_user),
    backend: Backend = Depends(get_backend),
):
    return ProfileResponse.from_view(await get_profile(backend, user))
