"""Profiles schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TutorRead(BaseModel):
    """Public tutor card."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    languages: list[str]
    bio: str
    profile_image_url: str | None
    session_lengths: list[int]


class ProfileRead(BaseModel):
    """Public profile response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    is_tutor: bool
    languages: list[str]
    bio: str
    profile_image_url: str | None
