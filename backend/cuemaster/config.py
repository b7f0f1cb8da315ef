# backend/cuemaster/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Collection snapshots live here; point at a shared database to sync terminals
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cuemaster.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Local durable cache (one JSON file per hall collection); None -> <instance>/cache
    CUEMASTER_CACHE_DIR = os.environ.get("CUEMASTER_CACHE_DIR")

    # Debounce for full-snapshot writes; 0 writes inline
    SYNC_DEBOUNCE_SECONDS = float(os.environ.get("SYNC_DEBOUNCE_SECONDS", "1.5"))

    # Business day runs from BUSINESS_DAY_START_HOUR to the same hour next day
    HALL_TIMEZONE = os.environ.get("HALL_TIMEZONE", "UTC")
    BUSINESS_DAY_START_HOUR = int(os.environ.get("BUSINESS_DAY_START_HOUR", "8"))

    # Partition holding the staff registry and shared market catalog
    GLOBAL_HALL_ID = os.environ.get("GLOBAL_HALL_ID", "MAIN")

    DEFAULT_PRICE_PER_GAME = int(os.environ.get("DEFAULT_PRICE_PER_GAME", "1000"))
