"""User profile document model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.core.document_store import DocumentSnapshot, document_id


def profile_path(user_id: str) -> str:
    return f"users/{document_id(user_id)}"


class UserProfile(BaseModel):
    """Profile as stored under ``users/{id}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = "Unknown"
    is_tutor: bool = Field(default=False, alias="isTutor")
    languages: list[str] = Field(default_factory=list)
    bio: str = ""
    session_lengths: list[int] | None = Field(default=None, alias="sessionLengths")
    profile_image_url: str | None = Field(default=None, alias="profileImageURL")
    fcm_token: str | None = Field(default=None, alias="fcmToken")

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> UserProfile:
        return cls.model_validate({**(snapshot.data or {}), "id": snapshot.id})

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
