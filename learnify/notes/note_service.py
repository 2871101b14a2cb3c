"""
Student notes per course, with full-text search and extractive summaries
"""

import logging
import re
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from learnify.core.database import new_id, utcnow, serialize_many
from learnify.core.errors import ErrorKind, ServiceResult
from learnify.core.stats import build_pagination, page_window
from learnify.notes.note_models import NoteCreate, NoteDocument, NoteUpdate

logger = logging.getLogger(__name__)

NOTE_PAGE_SIZE = 20
SUMMARY_SENTENCES = 3
SUMMARY_MAX_LENGTH = 2000

_SENTENCE_SPLIT = re.compile(r"\.")


def summarize(content: str, sentences: int = SUMMARY_SENTENCES) -> str:
    """Key points are the first few non-empty sentences of the note"""
    parts = [s.strip() for s in _SENTENCE_SPLIT.split(content or "") if s.strip()]
    key_points = ". ".join(parts[:sentences])
    return f"Key Points: {key_points}."[:SUMMARY_MAX_LENGTH]


class NoteService:

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def _present(self, notes: List[dict]) -> List[dict]:
        courses = await self.db.courses.find(
            {"course_id": {"$in": list({n["course_id"] for n in notes})}},
            {"_id": 0, "course_id": 1, "title": 1},
        ).to_list(length=None)
        by_course = {c["course_id"]: c for c in courses}
        for note in serialize_many(notes):
            note["course"] = by_course.get(note["course_id"])
        return notes

    async def _owned(self, note_id: str, student_id: str):
        """Load a note for its owner; returns (note, failure)"""
        note = await self.db.notes.find_one({"note_id": note_id})
        if not note:
            return None, ServiceResult.fail(ErrorKind.NOT_FOUND, "Note not found")
        if note["student_id"] != student_id:
            return None, ServiceResult.fail(ErrorKind.FORBIDDEN, "Access denied")
        return note, None

    async def create_note(self, student_id: str, payload: NoteCreate) -> ServiceResult:
        if not await self.db.courses.count_documents({"course_id": payload.course_id}, limit=1):
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Course not found")

        now = utcnow()
        note = NoteDocument(
            note_id=new_id("NOTE"),
            student_id=student_id,
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        ).model_dump()
        await self.db.notes.insert_one(note)

        return ServiceResult.ok(
            data=(await self._present([note]))[0],
            message="Note created successfully",
            created=True,
        )

    async def list_notes(
        self,
        student_id: str,
        course_id: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = NOTE_PAGE_SIZE,
    ) -> ServiceResult:
        page, limit, skip = page_window(page, limit or NOTE_PAGE_SIZE)

        query = {"student_id": student_id}
        if course_id:
            query["course_id"] = course_id
        if search:
            query["$text"] = {"$search": search}

        cursor = self.db.notes.find(query).sort("created_at", -1).skip(skip).limit(limit)
        notes = await cursor.to_list(length=limit)
        total = await self.db.notes.count_documents(query)

        return ServiceResult.ok(data={
            "notes": await self._present(notes),
            "pagination": build_pagination(page, limit, total),
        })

    async def get_note(self, note_id: str, student_id: str) -> ServiceResult:
        note, failure = await self._owned(note_id, student_id)
        if failure:
            return failure
        return ServiceResult.ok(data=(await self._present([note]))[0])

    async def update_note(self, note_id: str, student_id: str, payload: NoteUpdate) -> ServiceResult:
        note, failure = await self._owned(note_id, student_id)
        if failure:
            return failure

        # fields the client left out keep their stored values
        updates = payload.model_dump(exclude_unset=True)
        updates["updated_at"] = utcnow()
        note = await self.db.notes.find_one_and_update(
            {"note_id": note_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return ServiceResult.ok(
            data=(await self._present([note]))[0],
            message="Note updated successfully",
        )

    async def delete_note(self, note_id: str, student_id: str) -> ServiceResult:
        note, failure = await self._owned(note_id, student_id)
        if failure:
            return failure

        await self.db.notes.delete_one({"note_id": note_id})
        return ServiceResult.ok(message="Note deleted successfully")

    async def generate_summary(self, note_id: str, student_id: str) -> ServiceResult:
        note, failure = await self._owned(note_id, student_id)
        if failure:
            return failure

        summary = summarize(note["content"])
        await self.db.notes.update_one(
            {"note_id": note_id},
            {"$set": {"summary": summary, "updated_at": utcnow()}},
        )
        logger.info("Summary generated for note %s", note_id)
        return ServiceResult.ok(
            data={"summary": summary},
            message="Summary generated successfully",
        )
