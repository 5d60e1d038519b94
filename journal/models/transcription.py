from pydantic import BaseModel


class TranscriptionResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    error: str
