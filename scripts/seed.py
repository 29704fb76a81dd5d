"""
Seed a development database.

Creates the tables, loads the prefecture master list and a handful of demo
profiles, then prints a bearer token for each demo user.

    python -m scripts.seed
"""

import asyncio
import logging
import uuid

from sqlalchemy import select

from app.core.logging import setup_logging
from app.core.security import create_access_token
from app.db.session import async_session_maker, close_db, init_db
from app.models.user import Prefecture
from app.services import profile_service


logger = logging.getLogger("scripts.seed")

PREFECTURES = [
    ("01", "Hokkaido"), ("02", "Aomori"), ("03", "Iwate"), ("04", "Miyagi"),
    ("05", "Akita"), ("06", "Yamagata"), ("07", "Fukushima"), ("08", "Ibaraki"),
    ("09", "Tochigi"), ("10", "Gunma"), ("11", "Saitama"), ("12", "Chiba"),
    ("13", "Tokyo"), ("14", "Kanagawa"), ("15", "Niigata"), ("16", "Toyama"),
    ("17", "Ishikawa"), ("18", "Fukui"), ("19", "Yamanashi"), ("20", "Nagano"),
    ("21", "Gifu"), ("22", "Shizuoka"), ("23", "Aichi"), ("24", "Mie"),
    ("25", "Shiga"), ("26", "Kyoto"), ("27", "Osaka"), ("28", "Hyogo"),
    ("29", "Nara"), ("30", "Wakayama"), ("31", "Tottori"), ("32", "Shimane"),
    ("33", "Okayama"), ("34", "Hiroshima"), ("35", "Yamaguchi"), ("36", "Tokushima"),
    ("37", "Kagawa"), ("38", "Ehime"), ("39", "Kochi"), ("40", "Fukuoka"),
    ("41", "Saga"), ("42", "Nagasaki"), ("43", "Kumamoto"), ("44", "Oita"),
    ("45", "Miyazaki"), ("46", "Kagoshima"), ("47", "Okinawa"),
]

# Fixed ids so tokens stay valid across re-seeds
DEMO_PROFILES = [
    {
        "id": uuid.UUID("00000000-0000-4000-8000-000000000001"),
        "email": "haruto@example.com",
        "form": {
            "display_name": "Haruto", "age": "29", "gender": "male", "prefecture": "13",
            "occupation": "Engineer", "bio": "Weekend hiker and coffee enthusiast.",
            "preferred_min_age": "25", "preferred_max_age": "35",
            "meeting_purpose": "relationship", "height": "175", "drinking": "sometimes",
        },
    },
    {
        "id": uuid.UUID("00000000-0000-4000-8000-000000000002"),
        "email": "yui@example.com",
        "form": {
            "display_name": "Yui", "age": "27", "gender": "female", "prefecture": "13",
            "city": "Shibuya", "occupation": "Designer", "bio": "Looking for someone to explore cafes with.",
            "meeting_purpose": "relationship", "free_days": "weekends",
        },
    },
    {
        "id": uuid.UUID("00000000-0000-4000-8000-000000000003"),
        "email": "sota@example.com",
        "form": {
            "display_name": "Sota", "age": "33", "gender": "male", "prefecture": "27",
            "occupation": "Chef", "bio": "I cook, you choose the wine.",
            "meeting_purpose": "marriage", "smoking": "never",
        },
    },
    {
        "id": uuid.UUID("00000000-0000-4000-8000-000000000004"),
        "email": "mei@example.com",
        "form": {
            "display_name": "Mei", "age": "31", "gender": "female", "prefecture": "14",
            "occupation": "Nurse", "preferred_prefecture": "13", "meeting_frequency": "weekly",
        },
    },
]


async def seed() -> None:
    await init_db()

    async with async_session_maker() as db:
        existing = await db.execute(select(Prefecture.code))
        known = {row[0] for row in existing.all()}
        db.add_all(Prefecture(code=code, name=name) for code, name in PREFECTURES if code not in known)
        await db.commit()
        logger.info(f"Prefectures: {len(PREFECTURES) - len(known)} added")

        for demo in DEMO_PROFILES:
            if await profile_service.has_profile(db, demo["id"]):
                logger.info(f"Profile {demo['form']['display_name']} already exists")
                continue
            await profile_service.create_profile(db, demo["id"], demo["form"])

    print("\nDevelopment bearer tokens:")
    for demo in DEMO_PROFILES:
        token = create_access_token(demo["id"], demo["email"], expires_minutes=60 * 24)
        print(f"  {demo['form']['display_name']:<8} {demo['id']}\n    {token}")

    await close_db()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
