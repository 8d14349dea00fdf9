"""
Closed status vocabularies.

Every status or method column is one of these enums; an unknown string fails
at construction time (Pydantic) or at load time (SQLAlchemy Enum) instead of
silently mismatching a comparison.
"""

import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    PASSENGER = "PASSENGER"
    CONDUCTOR = "CONDUCTOR"


class ApplicationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_decision(self) -> bool:
        return self is not ApplicationStatus.PENDING


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class PaymentMethod(str, enum.Enum):
    CARD = "CARD"
    UPI = "UPI"
    NET_BANKING = "NET_BANKING"
    WALLET = "WALLET"
    CASH = "CASH"


class ScanMethod(str, enum.Enum):
    QR = "QR"
    MANUAL = "MANUAL"
