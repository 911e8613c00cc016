"""ProjectX Types - Pydantic DTOs shared by the ProjectX backend and its clients."""

__version__ = "0.1.0"
