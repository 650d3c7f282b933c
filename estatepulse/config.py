"""Configuration settings for EstatePulse."""
from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    """Base configuration class."""

    SECRET_KEY = os.environ.get("ESTATEPULSE_SECRET_KEY", "estatepulse-dev-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "ESTATEPULSE_DATABASE_URI", f"sqlite:///{BASE_DIR / 'estatepulse.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ENVIRONMENT = os.environ.get("ESTATEPULSE_ENV", "development")
    LOG_RETENTION = int(os.environ.get("ESTATEPULSE_LOG_RETENTION", 200))

    # key under which the whole project collection is stored as one JSON blob
    STORAGE_KEY = "estate_projects"
    DEFAULT_ROLE = os.environ.get("ESTATEPULSE_DEFAULT_ROLE", "EDITOR")
    ADMIN_QUERY_PARAM = "admin"

    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
    INSIGHT_MODEL = os.environ.get("ESTATEPULSE_INSIGHT_MODEL", "gemini-2.5-flash")
