from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnify.auth.dependencies import Principal, get_current_user
from learnify.core.database import get_db
from learnify.core.errors import raise_for_result
from learnify.notes.note_models import NoteCreate, NoteUpdate
from learnify.notes.note_service import NOTE_PAGE_SIZE, NoteService

router = APIRouter(tags=["Notes"])


def get_note_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> NoteService:
    return NoteService(db)


@router.post("", status_code=201)
async def create_note_endpoint(
    payload: NoteCreate,
    user: Principal = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    result = raise_for_result(await service.create_note(user.user_id, payload))
    return {"success": True, "message": result.message, "data": {"note": result.data}}


@router.get("")
async def list_notes_endpoint(
    course_id: Optional[str] = Query(None, alias="courseId"),
    search: Optional[str] = None,
    page: int = 1,
    limit: int = NOTE_PAGE_SIZE,
    user: Principal = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    result = await service.list_notes(user.user_id, course_id, search, page, limit)
    return {"success": True, "data": result.data}


@router.get("/{note_id}")
async def get_note_endpoint(
    note_id: str,
    user: Principal = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    result = raise_for_result(await service.get_note(note_id, user.user_id))
    return {"success": True, "data": {"note": result.data}}


@router.put("/{note_id}")
async def update_note_endpoint(
    note_id: str,
    payload: NoteUpdate,
    user: Principal = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    result = raise_for_result(await service.update_note(note_id, user.user_id, payload))
    return {"success": True, "message": result.message, "data": {"note": result.data}}


@router.delete("/{note_id}")
async def delete_note_endpoint(
    note_id: str,
    user: Principal = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    result = raise_for_result(await service.delete_note(note_id, user.user_id))
    return {"success": True, "message": result.message}


@router.post("/{note_id}/summary")
async def summary_endpoint(
    note_id: str,
    user: Principal = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    """Store and return a key-points summary of the note"""
    result = raise_for_result(await service.generate_summary(note_id, user.user_id))
    return {"success": True, "message": result.message, "data": result.data}
