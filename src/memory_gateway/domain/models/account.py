"""Account models resolved from the caller's access key."""

from pydantic import BaseModel


class Account(BaseModel):
    """Internal user identity behind an opaque access key."""

    id: str
    subscription_status: str | None = None
