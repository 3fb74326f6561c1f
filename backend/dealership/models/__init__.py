from .inventory import Part, InventoryLogEntry, PART_CATEGORIES, STOCK_REASONS
from .sales import Sale, SaleItem, SALE_STATUSES
from .workshop import ServiceJob, JobPart, JobAdditionalService, JOB_STATUSES
from .reports import DailyReport, ShiftMarker
from .personnel import User, Technician, SessionToken, USER_ROLES, TECHNICIAN_STATUSES
from .notifications import Notification, NOTIFICATION_TYPES, NOTIFICATION_PRIORITIES

__all__ = [
    'Part', 'InventoryLogEntry', 'PART_CATEGORIES', 'STOCK_REASONS',
    'Sale', 'SaleItem', 'SALE_STATUSES',
    'ServiceJob', 'JobPart', 'JobAdditionalService', 'JOB_STATUSES',
    'DailyReport', 'ShiftMarker',
    'User', 'Technician', 'SessionToken', 'USER_ROLES', 'TECHNICIAN_STATUSES',
    'Notification', 'NOTIFICATION_TYPES', 'NOTIFICATION_PRIORITIES',
]
