"""Profiles business logic layer."""

from __future__ import annotations

from fastapi import Depends

from app.core.config import get_settings
from app.core.document_store import DocumentStore
from app.core.stores import get_document_store
from app.modules.profiles.models import UserProfile
from app.modules.profiles.repository import ProfilesRepository
from app.shared.exceptions import NotFoundException


class ProfilesService:
    """Read side of user profiles used by booking and discovery."""

    def __init__(
        self,
        repository: ProfilesRepository,
        default_session_lengths: tuple[int, ...] = (30, 60),
    ) -> None:
        self.repository = repository
        self.default_session_lengths = default_session_lengths

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = await self.repository.get_profile(user_id)
        if profile is None:
            raise NotFoundException("User not found")
        return profile

    async def get_display_name(self, user_id: str) -> str:
        profile = await self.get_profile(user_id)
        return profile.name

    async def get_tutor(self, tutor_id: str) -> UserProfile:
        profile = await self.repository.get_profile(tutor_id)
        if profile is None or not profile.is_tutor:
            raise NotFoundException("Tutor not found")
        return profile

    def allowed_session_lengths(self, profile: UserProfile) -> tuple[int, ...]:
        """Lengths the tutor offers, falling back to configured defaults."""
        if profile.session_lengths:
            return tuple(sorted(set(profile.session_lengths)))
        return self.default_session_lengths

    async def list_tutors(self, exclude_user_id: str | None = None) -> list[UserProfile]:
        """Tutors available for booking, without the requesting user."""
        tutors = await self.repository.list_tutors()
        return [tutor for tutor in tutors if tutor.id != exclude_user_id]


def build_profiles_service(store: DocumentStore) -> ProfilesService:
    return ProfilesService(
        ProfilesRepository(store),
        default_session_lengths=get_settings().default_session_lengths,
    )


async def get_profiles_service(store: DocumentStore = Depends(get_document_store)) -> ProfilesService:
    """Dependency provider for profiles service."""
    return build_profiles_service(store)
