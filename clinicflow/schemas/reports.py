"""Admin report schemas."""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel


class ReportKind(str, Enum):
    """Available admin reports."""

    APPOINTMENTS = "appointments"
    PAYMENTS = "payments"
    USERS = "users"
    EQUIPMENT = "equipment"


class ReportResponse(BaseModel):
    """Report rows plus summary statistics."""

    kind: ReportKind
    start: date
    end: date
    rows: list[dict[str, Any]]
    stats: dict[str, Any]
