# Importing every model registers it on Base.metadata
from buspass.models.enums import (
    ApplicationStatus,
    PaymentMethod,
    PaymentStatus,
    ScanMethod,
    UserRole,
)
from buspass.models.user import User
from buspass.models.pass_type import PassType
from buspass.models.application import Application, Approval, Document
from buspass.models.payment import Payment
from buspass.models.bus_pass import BusPass
from buspass.models.scan import PassScan

__all__ = [
    "ApplicationStatus",
    "PaymentMethod",
    "PaymentStatus",
    "ScanMethod",
    "UserRole",
    "User",
    "PassType",
    "Application",
    "Approval",
    "Document",
    "Payment",
    "BusPass",
    "PassScan",
]
