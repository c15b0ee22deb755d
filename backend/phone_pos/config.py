# backend/phone_pos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///phone_pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Safety backups written before a restore land here
    BACKUP_DIR = os.environ.get("BACKUP_DIR", "backups")

    # Owner scope used when a request carries no X-Owner-Id header
    DEFAULT_OWNER_ID = os.environ.get("DEFAULT_OWNER_ID", "local")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
