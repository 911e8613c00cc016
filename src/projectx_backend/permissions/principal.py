from pydantic import BaseModel


class Principal(BaseModel):
    """Authenticated caller, as resolved from a bearer token."""
    user_id: int
    username: str
    role: str = "employee"

    def __str__(self) -> str:
        return f"{self.username} ({self.user_id})"
