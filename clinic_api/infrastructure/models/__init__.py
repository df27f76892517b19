"""ORM models used by the application infrastructure."""

from .appointment import AppointmentModel
from .branch import BranchModel
from .clinic_service import ClinicServiceModel
from .invoice import InvoiceModel, PaymentModel
from .lead import LeadModel
from .notification import NotificationModel
from .notification_preference import NotificationPreferenceModel
from .patient import PatientModel
from .user import UserModel

__all__ = [
    "AppointmentModel",
    "BranchModel",
    "ClinicServiceModel",
    "InvoiceModel",
    "LeadModel",
    "NotificationModel",
    "NotificationPreferenceModel",
    "PatientModel",
    "PaymentModel",
    "UserModel",
]
