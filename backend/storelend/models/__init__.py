from .directory import Store, User
from .borrows import Borrow, BorrowItem
from .collaborators import StoreNotification, AuditEvent

__all__ = [
    'Store', 'User',
    'Borrow', 'BorrowItem',
    'StoreNotification', 'AuditEvent',
]
