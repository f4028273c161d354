"""User Schemas — demo payloads for the user routes.

Invariants:
    - User.name: 1-64 chars, stripped, lower-case letters/digits/dashes only
"""

import re

from pydantic import BaseModel, Field, field_validator

_NAME_PATTERN = re.compile(r"[a-z0-9-]+")

class User(BaseModel):
    """Public user record — serialized as-is by OkJson."""
    name: str = Field(min_length=1, max_length=64, pattern=r"^[a-z0-9-]+$")


class UserCreate(BaseModel):
    """Body of POST /users."""
    name: str = Field(min_length=1, max_length=64)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        if not _NAME_PATTERN.fullmatch(v):
            raise ValueError("name may contain only letters, digits and dashes")
        return v
