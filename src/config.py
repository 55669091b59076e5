"""Configuration module for the EmployDEX base API.

This module provides centralized configuration management, including directory
paths, API server settings, authentication settings and seed defaults.
All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = ROOT_DIR / DATA_DIR_NAME

# --- Database Configuration ---

DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/base.db")

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "5000"))

# CORS allowed origins (comma-separated list)
# Default includes local development addresses of the React frontend.
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# Take the client address from X-Forwarded-For; enable only behind a trusted proxy
TRUST_PROXY_HEADERS: bool = os.getenv("TRUST_PROXY_HEADERS", "false").lower() == "true"

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Authentication Configuration ---

JWT_SECRET_KEY: str = os.getenv(
    "JWT_SECRET_KEY", "employdex-base-secret-change-in-production"
)
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
REFRESH_TOKEN_EXPIRE_DAYS: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

MIN_PASSWORD_LENGTH = 8

# --- Seed Configuration ---

DEFAULT_ADMIN_EMAIL: str = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@employdex.com")
DEFAULT_ADMIN_PASSWORD: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "Admin@123")
DEFAULT_ADMIN_MOBILE: str = os.getenv("DEFAULT_ADMIN_MOBILE", "0000000000")

# Seed default data (roles, permissions, statuses, admin) on startup
SEED_ON_STARTUP: bool = os.getenv("SEED_ON_STARTUP", "true").lower() == "true"

# Role names with special meaning
ADMIN_ROLE_NAME = "Admin"
DEFAULT_ROLE_NAME = "User"
REVIEWER_ROLE_NAME = "Reviewer"

# Primary administrator account cannot be deleted
PRIMARY_ADMIN_USER_ID = 1

# --- Upload Configuration ---

# Maximum size of an uploaded CSV file for bulk import (5MB)
MAX_CSV_UPLOAD_BYTES: int = int(os.getenv("MAX_CSV_UPLOAD_BYTES", str(5 * 1024 * 1024)))

# --- Pagination Defaults ---

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
