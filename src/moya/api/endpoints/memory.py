"""Memory API endpoints: setting entries and chapter sync."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from moya.api.dependencies import get_current_user, get_library, get_memory_store
from moya.core.errors import NotFoundError
from moya.core.logging import get_logger
from moya.domain.models import FragmentKind, MemoryFragment
from moya.services.library import LibraryService
from moya.services.memory_store import MemoryStore

logger = get_logger(__name__)
router = APIRouter()


class RememberSettingRequest(BaseModel):
    """A character, world, item or outline entry."""

    kind: FragmentKind = Field(..., description="character, world, item or outline")
    name: str
    description: str
    section: str | None = Field(None, description="Outline section, ignored for other kinds")


class SettingResponse(BaseModel):
    id: UUID
    novel_id: str
    kind: FragmentKind
    name: str | None
    description: str
    section: str | None
    content: str
    created_at: datetime

    @classmethod
    def from_fragment(cls, fragment: MemoryFragment) -> "SettingResponse":
        return cls(
            id=fragment.id,
            novel_id=fragment.novel_id,
            kind=fragment.kind,
            name=fragment.name,
            description=fragment.description,
            section=fragment.metadata.section,
            content=fragment.content,
            created_at=fragment.created_at,
        )


class SyncResponse(BaseModel):
    chapter_id: str
    fragments: int


@router.post(
    "/novels/{novel_id}/settings",
    status_code=status.HTTP_201_CREATED,
    response_model=SettingResponse,
)
async def remember_setting(
    novel_id: str,
    request: RememberSettingRequest,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
    memory: MemoryStore = Depends(get_memory_store),
):
    await library.get_novel(novel_id, user_id)
    fragment = await memory.remember_setting(
        novel_id, request.kind, request.name, request.description, request.section
    )
    return SettingResponse.from_fragment(fragment)


@router.get("/novels/{novel_id}/settings", response_model=list[SettingResponse])
async def list_settings(
    novel_id: str,
    kind: FragmentKind = Query(...),
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
    memory: MemoryStore = Depends(get_memory_store),
):
    await library.get_novel(novel_id, user_id)
    fragments = await memory.list_settings(novel_id, kind)
    return [SettingResponse.from_fragment(f) for f in fragments]


@router.delete("/settings/{fragment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_setting(
    fragment_id: UUID,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
    memory: MemoryStore = Depends(get_memory_store),
):
    fragment = await memory.get(fragment_id)
    try:
        await library.get_novel(fragment.novel_id, user_id)
    except NotFoundError:
        # Someone else's fragment looks the same as a missing one
        raise NotFoundError("fragment", fragment_id) from None

    logger.info("Deleting setting", fragment_id=str(fragment_id), user_id=user_id)
    await memory.forget_setting(fragment)


@router.post("/chapters/{chapter_id}/sync", response_model=SyncResponse)
async def sync_chapter(
    chapter_id: str,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
    memory: MemoryStore = Depends(get_memory_store),
):
    """Re-chunk the chapter's saved text into memory, replacing earlier slices."""
    chapter = await library.get_chapter(chapter_id, user_id)
    fragments = await memory.sync_chapter(chapter.novel_id, chapter.id, chapter.plain_text, chapter.title)
    return SyncResponse(chapter_id=chapter.id, fragments=len(fragments))
