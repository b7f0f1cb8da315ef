from .snapshots import CollectionSnapshot
from .sessions import Session, SessionState, MarketOrder
from .transactions import Transaction, PAYMENT_CASH, PAYMENT_CREDIT, PAYMENT_DEBT, VALID_PAYMENT_METHODS
from .settings import HallSettings, DurationRange, CatalogItem
from .staff import StaffUser, AttendanceRecord

__all__ = [
    'CollectionSnapshot',
    'Session', 'SessionState', 'MarketOrder',
    'Transaction', 'PAYMENT_CASH', 'PAYMENT_CREDIT', 'PAYMENT_DEBT', 'VALID_PAYMENT_METHODS',
    'HallSettings', 'DurationRange', 'CatalogItem',
    'StaffUser', 'AttendanceRecord',
]
