"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from datetime import timedelta

from app.core.config import get_settings
from app.core.document_store import DocumentStore
from app.core.stores import build_document_store
from app.modules.profiles.models import UserProfile
from app.modules.profiles.repository import ProfilesRepository
from app.modules.scheduling.repository import AvailabilityRepository
from app.modules.scheduling.slots import grid_index
from app.shared.utils import to_date_key, utc_now

DEMO_TUTOR = UserProfile(
    id="demo-tutor",
    name="Demo Tutor",
    is_tutor=True,
    languages=["Spanish", "English"],
    bio="Conversational Spanish for beginners.",
    session_lengths=[30, 60],
)
DEMO_HOUR_ONLY_TUTOR = UserProfile(
    id="demo-tutor-hourly",
    name="Demo Hourly Tutor",
    is_tutor=True,
    languages=["French"],
    bio="Hour-long French lessons.",
    session_lengths=[60],
)
DEMO_STUDENT = UserProfile(id="demo-student", name="Demo Student", languages=["Spanish"])

DEMO_DAY_OFFSETS = (1, 2, 3, 4, 5)
DEMO_SLOT_LABELS = ("9:00 AM", "9:30 AM", "10:00 AM", "10:30 AM", "6:00 PM", "6:30 PM", "7:00 PM")


@dataclass(slots=True)
class SeedStats:
    profiles_saved: int = 0
    days_seeded: int = 0
    slots_opened: int = 0


async def _run_seed(store: DocumentStore) -> SeedStats:
    stats = SeedStats()
    profiles = ProfilesRepository(store)
    availability = AvailabilityRepository(store)

    for profile in (DEMO_TUTOR, DEMO_HOUR_ONLY_TUTOR, DEMO_STUDENT):
        await profiles.save_profile(profile)
        stats.profiles_saved += 1

    slots = {grid_index(label) for label in DEMO_SLOT_LABELS}
    today = utc_now()
    for tutor in (DEMO_TUTOR, DEMO_HOUR_ONLY_TUTOR):
        for offset in DEMO_DAY_OFFSETS:
            date = to_date_key(today + timedelta(days=offset))
            before = await availability.get_open_slots(tutor.id, date)
            after = await availability.add_slots(tutor.id, date, slots)
            stats.days_seeded += 1
            stats.slots_opened += len(after - before)
    return stats


async def _seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    store, engine = build_document_store(settings)
    try:
        return await _run_seed(store)
    finally:
        if engine is not None:
            await engine.dispose()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed demo tutors, a student and open availability.",
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding when APP_ENV is production.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Profiles saved: {stats.profiles_saved}")
    print(f"- Days seeded: {stats.days_seeded}")
    print(f"- Slots opened: {stats.slots_opened}")
    print("")
    print(f"Demo tutor ids: {DEMO_TUTOR.id}, {DEMO_HOUR_ONLY_TUTOR.id}")
    print(f"Demo student id: {DEMO_STUDENT.id}")


def main() -> int:
    args = _build_parser().parse_args()
    try:
        stats = asyncio.run(_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
