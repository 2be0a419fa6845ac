# Overview: Declarative role -> capability map. The only place roles are interpreted.

from ..models.auth import ROLE_MANAGEMENT, ROLE_POS_USER, ROLE_SUPERVISOR
from .definitions import PERMISSION_DEFINITIONS


POS_USER_CAPABILITIES = frozenset({
    "VIEW_PRODUCTS",
    "VIEW_STOCK",
    "RECORD_STOCKTAKE",
    "CREATE_ORDER",
    "VIEW_ORDERS",
    "MARK_ORDER_PAID",
    "COMPLETE_ORDER",
    "VIEW_STORES",
})

SUPERVISOR_CAPABILITIES = POS_USER_CAPABILITIES | frozenset({
    "VIEW_COSTS",
    "VIEW_PRICE_HISTORY",
    "GENERATE_CATALOG",
    "ADJUST_STOCK",
    "VIEW_STOCK_REPORT",
    "MANAGE_RESTOCK",
    "RECEIVE_RESTOCK",
    "CANCEL_ORDER",
    "VIEW_ORDER_STATS",
    "VIEW_USERS",
    "VIEW_DEVICES",
    "VIEW_AUDIT_LOG",
})

MANAGEMENT_CAPABILITIES = frozenset(perm[0] for perm in PERMISSION_DEFINITIONS)


ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    ROLE_MANAGEMENT: MANAGEMENT_CAPABILITIES,
    ROLE_SUPERVISOR: SUPERVISOR_CAPABILITIES,
    ROLE_POS_USER: POS_USER_CAPABILITIES,
}
