"""Session and caller schemas."""

from pydantic import BaseModel


class CallerRead(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    landing: str


class SessionRead(BaseModel):
    authenticated: bool
    redirect_to: str
    user: CallerRead | None = None
