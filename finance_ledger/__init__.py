"""Finance Ledger package."""

__all__ = [
    "analytics",
    "auth",
    "cli",
    "config",
    "data_loader",
    "errors",
    "formatting",
    "logging_setup",
    "models",
    "reports",
    "server",
    "store",
    "view",
    "webapp",
]

__version__ = "0.1.0"
