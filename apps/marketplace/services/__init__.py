"""
Marketplace Services Package
Centralized imports for all services
"""

from .availability import availability_gate, ProductAvailabilityGate
from .chat import chat_service, ChatService
from .errors import ErrorKind, MarketplaceError
from .ledger import wallet_ledger, WalletLedger
from .lifecycle import order_engine, OrderLifecycleEngine
from .notifications import notification_service
from .results import ServiceResult
from .reviews import review_service
from .types import CartLine, Identity

__all__ = [
    'availability_gate',
    'wallet_ledger',
    'order_engine',
    'review_service',
    'chat_service',
    'notification_service',
    'ProductAvailabilityGate',
    'WalletLedger',
    'OrderLifecycleEngine',
    'ChatService',
    'ServiceResult',
    'ErrorKind',
    'MarketplaceError',
    'CartLine',
    'Identity',
]
