"""Exceptions shared across the Finance Ledger package."""

from __future__ import annotations


class StoreError(Exception):
    """A record store read or write failed.

    ``str(exc)`` is the message shown to the user.
    """
