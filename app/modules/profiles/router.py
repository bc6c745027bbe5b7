"""Profiles API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.modules.profiles.models import UserProfile
from app.modules.profiles.schemas import ProfileRead, TutorRead
from app.modules.profiles.service import ProfilesService, get_profiles_service
from app.shared.pagination import Page, Window, get_window, paginate

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/tutors", response_model=Page[TutorRead])
async def list_tutors(
    exclude_user_id: str | None = Query(default=None),
    window: Window = Depends(get_window),
    service: ProfilesService = Depends(get_profiles_service),
) -> Page[TutorRead]:
    """List tutors available for booking."""
    tutors = await service.list_tutors(exclude_user_id=exclude_user_id)

    def _card(tutor: UserProfile) -> TutorRead:
        return TutorRead(
            id=tutor.id,
            name=tutor.name,
            languages=tutor.languages,
            bio=tutor.bio,
            profile_image_url=tutor.profile_image_url,
            session_lengths=list(service.allowed_session_lengths(tutor)),
        )

    return paginate(tutors, window, _card)


@router.get("/{user_id}", response_model=ProfileRead)
async def get_profile(
    user_id: str,
    service: ProfilesService = Depends(get_profiles_service),
) -> ProfileRead:
    """Return public profile."""
    profile = await service.get_profile(user_id)
    return ProfileRead.model_validate(profile)
