from .stores import Store, POSDevice
from .auth import User, SessionToken, user_stores, ROLES, ROLE_MANAGEMENT, ROLE_SUPERVISOR, ROLE_POS_USER
from .catalog import Sector, Product
from .pricing import ProductCost, ProductSectorDiscount, PriceHistory, CurrencyRate
from .inventory import (
    Stock, StockSnapshot, RestockOrder, RestockOrderItem,
    RESTOCK_INITIATED, RESTOCK_IN_TRANSIT, RESTOCK_RECEIVED, RESTOCK_CANCELLED,
    RESTOCK_STATUSES, RESTOCK_OPEN_STATUSES,
    SNAPSHOT_DAY_START, SNAPSHOT_DAY_END, SNAPSHOT_KINDS,
)
from .orders import (
    Order, OrderItem,
    ORDER_PENDING, ORDER_PAID, ORDER_COMPLETED, ORDER_CANCELLED,
    ORDER_STATUSES, REVENUE_STATUSES,
)
from .audit import AuditLog

__all__ = [
    'Store', 'POSDevice',
    'User', 'SessionToken', 'user_stores',
    'ROLES', 'ROLE_MANAGEMENT', 'ROLE_SUPERVISOR', 'ROLE_POS_USER',
    'Sector', 'Product',
    'ProductCost', 'ProductSectorDiscount', 'PriceHistory', 'CurrencyRate',
    'Stock', 'StockSnapshot', 'RestockOrder', 'RestockOrderItem',
    'RESTOCK_INITIATED', 'RESTOCK_IN_TRANSIT', 'RESTOCK_RECEIVED', 'RESTOCK_CANCELLED',
    'RESTOCK_STATUSES', 'RESTOCK_OPEN_STATUSES',
    'SNAPSHOT_DAY_START', 'SNAPSHOT_DAY_END', 'SNAPSHOT_KINDS',
    'Order', 'OrderItem',
    'ORDER_PENDING', 'ORDER_PAID', 'ORDER_COMPLETED', 'ORDER_CANCELLED',
    'ORDER_STATUSES', 'REVENUE_STATUSES',
    'AuditLog',
]
