import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from journal.database import get_db
from journal.models.entry import EntryCreate, EntryUpdate, JournalEntry
from journal.models.user import User
from journal.services import entries
from journal.services.auth import current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/entries", tags=["entries"])


@router.get("", response_model=list[JournalEntry])
async def list_entries(user: User = Depends(current_user)):
    """List the user's entries, newest first."""
    db = await get_db()
    return await entries.list_entries(db, user.id)


@router.post("", response_model=JournalEntry, status_code=201)
async def create_entry(body: EntryCreate, user: User = Depends(current_user)):
    db = await get_db()
    return await entries.create_entry(db, user.id, body.content)


@router.put("/{entry_id}", response_model=JournalEntry)
async def update_entry(entry_id: str, body: EntryUpdate, user: User = Depends(current_user)):
    db = await get_db()
    try:
        return await entries.update_entry(db, user.id, entry_id, body.content)
    except entries.EntryNotFoundError:
        raise HTTPException(status_code=404, detail="Entry not found")


@router.delete("/{entry_id}", status_code=204)
async def delete_entry(entry_id: str, user: User = Depends(current_user)):
    db = await get_db()
    try:
        await entries.delete_entry(db, user.id, entry_id)
    except entries.EntryNotFoundError:
        raise HTTPException(status_code=404, detail="Entry not found")
    return Response(status_code=204)
