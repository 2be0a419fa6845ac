# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    ("VIEW_PRODUCTS", "View Products", "List and view products, sectors and categories", PermissionCategory.CATALOG),
    ("MANAGE_PRODUCTS", "Manage Products", "Create, edit and deactivate products", PermissionCategory.CATALOG),
    ("MANAGE_SECTORS", "Manage Sectors", "Create, edit and deactivate customer sectors", PermissionCategory.CATALOG),
    ("MANAGE_CATEGORIES", "Manage Categories", "Create, rename and remove product categories", PermissionCategory.CATALOG),
]


# -- PRICING --

PRICING_PERMISSIONS = [
    ("VIEW_COSTS", "View Costs", "View cost build-up, discounts and quotes", PermissionCategory.PRICING),
    ("MANAGE_COSTS", "Manage Costs", "Set new product cost versions", PermissionCategory.PRICING),
    ("MANAGE_DISCOUNTS", "Manage Discounts", "Set product-sector discount versions", PermissionCategory.PRICING),
    ("VIEW_PRICE_HISTORY", "View Price History", "View the price trail of a product", PermissionCategory.PRICING),
    ("GENERATE_CATALOG", "Generate Catalog", "Generate sector price catalogs", PermissionCategory.PRICING),
    ("MANAGE_CURRENCY", "Manage Currency Rates", "Edit, pin and sync exchange rates", PermissionCategory.PRICING),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    ("VIEW_STOCK", "View Stock", "View stock levels, low stock and incoming shipments", PermissionCategory.INVENTORY),
    ("ADJUST_STOCK", "Adjust Stock", "Overwrite stock quantities with a reason", PermissionCategory.INVENTORY),
    ("RECORD_STOCKTAKE", "Record Stocktake", "Submit day-start / day-end stocktake counts", PermissionCategory.INVENTORY),
    ("VIEW_STOCK_REPORT", "View Stock Report", "View daily stocktake snapshots", PermissionCategory.INVENTORY),
    ("MANAGE_RESTOCK", "Manage Restock Orders", "Create, track and cancel restock orders", PermissionCategory.INVENTORY),
    ("RECEIVE_RESTOCK", "Receive Restock Orders", "Receive shipments into store stock", PermissionCategory.INVENTORY),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    ("CREATE_ORDER", "Create Order", "Ring up new orders", PermissionCategory.ORDERS),
    ("VIEW_ORDERS", "View Orders", "List and view orders", PermissionCategory.ORDERS),
    ("MARK_ORDER_PAID", "Mark Order Paid", "Record payment for an order", PermissionCategory.ORDERS),
    ("COMPLETE_ORDER", "Complete Order", "Complete paid orders and hand over pickups", PermissionCategory.ORDERS),
    ("CANCEL_ORDER", "Cancel Order", "Cancel pending orders and restore stock", PermissionCategory.ORDERS),
    ("VIEW_ORDER_STATS", "View Order Stats", "View revenue and product sales dashboards", PermissionCategory.ORDERS),
]


# -- USERS --

USER_PERMISSIONS = [
    ("VIEW_USERS", "View Users", "List staff accounts", PermissionCategory.USERS),
    ("MANAGE_USERS", "Manage Users", "Create and edit staff accounts, PINs and store access", PermissionCategory.USERS),
]


# -- DEVICES --

DEVICE_PERMISSIONS = [
    ("VIEW_DEVICES", "View Devices", "List registered tills", PermissionCategory.DEVICES),
    ("MANAGE_DEVICES", "Manage Devices", "Register or move tills between stores", PermissionCategory.DEVICES),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    ("VIEW_STORES", "View Stores", "List stores", PermissionCategory.SYSTEM),
    ("MANAGE_STORES", "Manage Stores", "Create stores", PermissionCategory.SYSTEM),
    ("VIEW_AUDIT_LOG", "View Audit Log", "Query stock and order audit trails", PermissionCategory.SYSTEM),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + PRICING_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + ORDER_PERMISSIONS
    + USER_PERMISSIONS
    + DEVICE_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
