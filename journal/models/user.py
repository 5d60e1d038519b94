from pydantic import BaseModel, field_validator


class User(BaseModel):
    id: str
    email: str
    created_at: str


class LoginRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("invalid email address")
        return value


class LoginResponse(BaseModel):
    status: str
    callback_url: str | None = None
