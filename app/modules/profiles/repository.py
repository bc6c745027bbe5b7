"""Profiles repository layer."""

from __future__ import annotations

from app.core.document_store import DocumentStore
from app.modules.profiles.models import UserProfile, profile_path


class ProfilesRepository:
    """Document operations for user profiles."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get_profile(self, user_id: str) -> UserProfile | None:
        snapshot = await self.store.get(profile_path(user_id))
        if not snapshot.exists:
            return None
        return UserProfile.from_snapshot(snapshot)

    async def list_tutors(self) -> list[UserProfile]:
        snapshots = await self.store.list_collection("users", {"isTutor": True}, order_by=("name",))
        return [UserProfile.from_snapshot(snapshot) for snapshot in snapshots]

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        await self.store.set(profile_path(profile.id), profile.to_document(), merge=True)
        return profile
