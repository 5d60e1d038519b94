"""Journal entry store. Every operation is scoped to one user."""

import logging
import uuid
from datetime import UTC, datetime

from journal.database import DatabaseAdapter
from journal.models.entry import JournalEntry

logger = logging.getLogger(__name__)


class EntryNotFoundError(Exception):
    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Entry not found: {entry_id}")
        self.entry_id = entry_id


def _to_entry(row) -> JournalEntry:
    return JournalEntry(
        id=row["id"],
        content=row["content"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def list_entries(db: DatabaseAdapter, user_id: str) -> list[JournalEntry]:
    rows = await db.fetch_all(
        "SELECT id, content, created_at, updated_at FROM journal_entries"
        " WHERE user_id = ? ORDER BY created_at DESC, id DESC",
        (user_id,),
    )
    return [_to_entry(row) for row in rows]


async def create_entry(db: DatabaseAdapter, user_id: str, content: str) -> JournalEntry:
    entry_id = str(uuid.uuid4())
    now = datetime.now(UTC).isoformat()
    await db.execute(
        "INSERT INTO journal_entries (id, user_id, content, created_at) VALUES (?, ?, ?, ?)",
        (entry_id, user_id, content, now),
    )
    await db.commit()
    logger.info("Created entry %s (%d chars)", entry_id, len(content))
    return JournalEntry(id=entry_id, content=content, created_at=now)


async def update_entry(db: DatabaseAdapter, user_id: str, entry_id: str, content: str) -> JournalEntry:
    row = await db.fetch_one(
        "SELECT id, created_at FROM journal_entries WHERE id = ? AND user_id = ?",
        (entry_id, user_id),
    )
    if not row:
        raise EntryNotFoundError(entry_id)

    now = datetime.now(UTC).isoformat()
    await db.execute(
        "UPDATE journal_entries SET content = ?, updated_at = ? WHERE id = ? AND user_id = ?",
        (content, now, entry_id, user_id),
    )
    await db.commit()
    return JournalEntry(id=entry_id, content=content, created_at=row["created_at"], updated_at=now)


async def delete_entry(db: DatabaseAdapter, user_id: str, entry_id: str) -> None:
    row = await db.fetch_one(
        "SELECT id FROM journal_entries WHERE id = ? AND user_id = ?",
        (entry_id, user_id),
    )
    if not row:
        raise EntryNotFoundError(entry_id)

    await db.execute(
        "DELETE FROM journal_entries WHERE id = ? AND user_id = ?",
        (entry_id, user_id),
    )
    await db.commit()
    logger.info("Deleted entry %s", entry_id)
