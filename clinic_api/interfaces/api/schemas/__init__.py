from .analytics import (
    AppointmentsRead,
    DashboardRead,
    LeadsRead,
    PatientsRead,
    RevenueRead,
    ServicesRead,
    StaffRead,
    TrendPointRead,
)
from .notification import (
    CamelModel,
    MarkAllReadResponse,
    NotificationListRead,
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
    NotificationRead,
    PaginationMeta,
    UnreadCountRead,
)

__all__ = [
    "AppointmentsRead",
    "CamelModel",
    "DashboardRead",
    "LeadsRead",
    "MarkAllReadResponse",
    "NotificationListRead",
    "NotificationPreferenceRead",
    "NotificationPreferenceUpdate",
    "NotificationRead",
    "PaginationMeta",
    "PatientsRead",
    "RevenueRead",
    "ServicesRead",
    "StaffRead",
    "TrendPointRead",
    "UnreadCountRead",
]
