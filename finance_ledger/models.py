"""SQLAlchemy models for the Finance Ledger web application."""

from __future__ import annotations

from typing import Any, Dict

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

TABLE_NAME = "financial_data"
COLUMNS = ("id", "name", "date", "type", "amount")
TYPE_OPTIONS = ("Expenditure", "Income")

# Range of a SQLite INTEGER column.
INTEGER_MIN = -(2**63)
INTEGER_MAX = 2**63 - 1


class FinancialRecord(db.Model):
    __tablename__ = TABLE_NAME

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    date = db.Column(db.Date, nullable=False)
    type = db.Column(db.String(32), nullable=False, default=TYPE_OPTIONS[0])
    amount = db.Column(db.Float, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date.isoformat() if self.date else None,
            "type": self.type,
            "amount": self.amount,
        }
