"""Configuration utilities for the Finance Ledger.

Provides defaults plus helpers to load overrides from a JSON file and from
environment variables (environment wins).
"""

from __future__ import annotations

import json
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from werkzeug.security import generate_password_hash


PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent

DEFAULT_PORT = 3000
DEFAULT_PAGE_SIZE = 10
PAGE_SIZE_OPTIONS: Tuple[int, ...] = (5, 10, 20, 50)
DEFAULT_STATIC_DIR = PROJECT_ROOT / "dist"
DEFAULT_DATABASE_URL = f"sqlite:///{PROJECT_ROOT / 'finance_ledger.db'}"


@dataclass
class AppConfig:
    database_url: str = DEFAULT_DATABASE_URL
    secret_key: str = field(default_factory=lambda: secrets.token_hex(16))
    admin_password_hash: Optional[str] = None
    static_dir: Path = DEFAULT_STATIC_DIR
    port: int = DEFAULT_PORT
    page_size: int = DEFAULT_PAGE_SIZE
    page_size_options: Tuple[int, ...] = PAGE_SIZE_OPTIONS
    log_level: Optional[str] = None

    @property
    def admin_enabled(self) -> bool:
        return bool(self.admin_password_hash)

    @staticmethod
    def load(config_path: Optional[str | Path] = None) -> "AppConfig":
        """Load config from JSON if provided, then apply environment overrides.

        JSON format (every key optional):
        {
          "database_url": "sqlite:///ledger.db",
          "secret_key": "...",
          "admin_password_hash": "scrypt:...",
          "static_dir": "dist",
          "port": 3000,
          "page_size": 10
        }
        """

        cfg = AppConfig()

        if config_path:
            p = Path(config_path)
            if p.exists():
                with p.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    cfg._apply(raw)

        env = os.environ
        cfg._apply(
            {
                "database_url": env.get("FINANCE_LEDGER_DATABASE_URL"),
                "secret_key": env.get("FINANCE_LEDGER_SECRET_KEY"),
                "admin_password_hash": env.get("FINANCE_LEDGER_ADMIN_PASSWORD_HASH"),
                "static_dir": env.get("FINANCE_LEDGER_STATIC_DIR"),
                "port": env.get("PORT"),
                "log_level": env.get("FINANCE_LEDGER_LOG_LEVEL"),
            }
        )
        plain = env.get("FINANCE_LEDGER_ADMIN_PASSWORD")
        if plain and not cfg.admin_password_hash:
            cfg.admin_password_hash = generate_password_hash(plain)
        return cfg

    def _apply(self, raw: dict) -> None:
        if raw.get("database_url"):
            self.database_url = str(raw["database_url"])
        if raw.get("secret_key"):
            self.secret_key = str(raw["secret_key"])
        if raw.get("admin_password_hash"):
            self.admin_password_hash = str(raw["admin_password_hash"])
        if raw.get("static_dir"):
            static_dir = Path(raw["static_dir"])
            self.static_dir = static_dir if static_dir.is_absolute() else PROJECT_ROOT / static_dir
        if raw.get("port"):
            self.port = int(raw["port"])
        if raw.get("page_size"):
            size = int(raw["page_size"])
            if size > 0:
                self.page_size = size
        if raw.get("log_level"):
            self.log_level = str(raw["log_level"])
