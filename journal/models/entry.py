from pydantic import BaseModel, field_validator


class EntryContent(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("content must not be empty")
        return value


class EntryCreate(EntryContent):
    pass


class EntryUpdate(EntryContent):
    pass


class JournalEntry(BaseModel):
    id: str
    content: str
    created_at: str
    updated_at: str | None = None
