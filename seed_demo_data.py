"""
Seed Demo Data — startup hook and standalone script.

Creates the admin account and three demo teachers, one per class level, when
the store has no users yet.

Usage:
    python seed_demo_data.py           # Seed the configured SQLite database
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Mapping

from werkzeug.security import generate_password_hash

from storage import Storage

logger = logging.getLogger(__name__)

DEMO_TEACHER_PASSWORD = "teacher123"

DEMO_TEACHERS = [
    {"name": "Anita Gurung", "email": "anita@school.com", "assigned_classes": ["Nursery"]},
    {"name": "Binay Shrestha", "email": "binay@school.com", "assigned_classes": ["LKG"]},
    {"name": "Champa Devi", "email": "champa@school.com", "assigned_classes": ["UKG"]},
]


def seed_default_users(store: Storage, config: Mapping[str, Any]) -> dict:
    """Seed the admin and demo teachers into an empty store. Returns summary dict."""
    if store.list_users():
        return {"seeded": False, "users": 0}

    store.create_user({
        "email": config["ADMIN_EMAIL"].lower(),
        "password_hash": generate_password_hash(config["ADMIN_PASSWORD"]),
        "name": "Administrator",
        "role": "admin",
    })

    password = generate_password_hash(DEMO_TEACHER_PASSWORD)
    for teacher in DEMO_TEACHERS:
        store.create_user({**teacher, "password_hash": password, "role": "teacher"})

    count = 1 + len(DEMO_TEACHERS)
    logger.info("Seeded %d demo users (admin: %s)", count, config["ADMIN_EMAIL"])
    return {"seeded": True, "users": count}


if __name__ == "__main__":
    from config import config_by_name
    from database import SqliteStorage

    cfg = config_by_name["development"]
    logging.basicConfig(level=logging.INFO)
    settings = {k: getattr(cfg, k) for k in dir(cfg) if k.isupper()}
    result = seed_default_users(SqliteStorage(cfg.DATABASE), settings)
    if not result["seeded"]:
        print(f"{cfg.DATABASE} already has users; nothing to do.")
        sys.exit(0)
    print(f"Seeded {result['users']} users into {cfg.DATABASE}")
