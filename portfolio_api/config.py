"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    CLIENT_URL: str
    MAX_UPLOAD_BYTES: int
    MAX_FILES_PER_REQUEST: int
    UPLOAD_DIR: Path
    CONTACT_RATE_LIMIT_MAX: int
    CONTACT_RATE_LIMIT_WINDOW_SECONDS: int
    EMAIL_HOST: str
    EMAIL_PORT: int
    EMAIL_USER: str
    EMAIL_PASS: str
    EMAIL_FROM: str
    ADMIN_NOTIFY_EMAIL: str
    ADMIN_USERNAME: str
    ADMIN_PASSWORD: str
    LOG_LEVEL: str

    def __init__(self, **overrides):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'portfolio.db'}")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "12"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:3000")
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))  # 5 MB default
        self.MAX_FILES_PER_REQUEST = int(os.getenv("MAX_FILES_PER_REQUEST", "10"))
        self.UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE / "uploads"))).expanduser()
        self.CONTACT_RATE_LIMIT_MAX = int(os.getenv("CONTACT_RATE_LIMIT_MAX", "3"))
        self.CONTACT_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("CONTACT_RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
        self.EMAIL_HOST = os.getenv("EMAIL_HOST", "")
        self.EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
        self.EMAIL_USER = os.getenv("EMAIL_USER", "")
        self.EMAIL_PASS = os.getenv("EMAIL_PASS", "")
        self.EMAIL_FROM = os.getenv("EMAIL_FROM", "")
        self.ADMIN_NOTIFY_EMAIL = os.getenv("ADMIN_NOTIFY_EMAIL", "") or self.EMAIL_USER
        self.ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "")
        self.ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        for key, value in overrides.items():
            if key not in type(self).__annotations__:
                raise TypeError(f"unknown setting: {key}")
            setattr(self, key, value)
        self.UPLOAD_DIR = Path(self.UPLOAD_DIR)
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.MAX_UPLOAD_BYTES <= 0:
            raise RuntimeError("MAX_UPLOAD_BYTES must be positive")
        if self.CONTACT_RATE_LIMIT_MAX < 1 or self.CONTACT_RATE_LIMIT_WINDOW_SECONDS < 1:
            raise RuntimeError("contact rate limit settings must be positive")

    @property
    def mail_configured(self) -> bool:
        return bool(self.EMAIL_HOST)
