# Overview: Capability category constants for grouping related capabilities.


class PermissionCategory:
    """Capability categories for organization and UI display."""
    CATALOG = "CATALOG"
    PRICING = "PRICING"
    INVENTORY = "INVENTORY"
    ORDERS = "ORDERS"
    USERS = "USERS"
    DEVICES = "DEVICES"
    SYSTEM = "SYSTEM"
