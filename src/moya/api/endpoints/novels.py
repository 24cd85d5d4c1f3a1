"""Novel and chapter API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from moya.api.dependencies import get_current_user, get_library, get_running_continuations
from moya.core.errors import ContinuationInProgressError
from moya.core.logging import get_logger
from moya.domain.models import Chapter, Document, Novel
from moya.services.continuation import ContinuationService
from moya.services.library import LibraryService

logger = get_logger(__name__)
router = APIRouter()


class CreateNovelRequest(BaseModel):
    title: str = Field(..., max_length=200)


class CreateChapterRequest(BaseModel):
    title: str = Field(..., max_length=200)


class SaveChapterRequest(BaseModel):
    """Editor update.

    ``plain_text`` is derived from ``content`` when the client leaves it out.
    """

    content: dict[str, Any]
    plain_text: str | None = None


@router.post("/novels", status_code=status.HTTP_201_CREATED, response_model=Novel)
async def create_novel(
    request: CreateNovelRequest,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
):
    return await library.create_novel(user_id, request.title)


@router.get("/novels", response_model=list[Novel])
async def list_novels(
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
):
    """The caller's novels, newest first."""
    return await library.list_novels(user_id)


@router.post("/novels/{novel_id}/chapters", status_code=status.HTTP_201_CREATED, response_model=Chapter)
async def create_chapter(
    novel_id: str,
    request: CreateChapterRequest,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
):
    await library.get_novel(novel_id, user_id)
    return await library.create_chapter(novel_id, request.title)


@router.get("/novels/{novel_id}/chapters", response_model=list[Chapter])
async def list_chapters(
    novel_id: str,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
):
    await library.get_novel(novel_id, user_id)
    return await library.list_chapters(novel_id)


@router.get("/chapters/{chapter_id}", response_model=Chapter)
async def get_chapter(
    chapter_id: str,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
):
    return await library.get_chapter(chapter_id, user_id)


@router.put("/chapters/{chapter_id}", response_model=Chapter)
async def save_chapter(
    chapter_id: str,
    request: SaveChapterRequest,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
    continuation: ContinuationService | None = Depends(get_running_continuations),
):
    """Replace the chapter content.

    Rejected with 409 while a continuation is writing into the chapter.
    """
    await library.get_chapter(chapter_id, user_id)
    if continuation is not None and continuation.is_running(chapter_id):
        raise ContinuationInProgressError(chapter_id)
    plain_text = request.plain_text if request.plain_text is not None else Document(request.content).plain_text
    return await library.save_chapter(chapter_id, request.content, plain_text)
