"""
Collection (table) names in the hosted database.
"""


class Collections:
    CLIENTS = "clients"
    TICKETS = "tickets"
    PRODUCTS = "products"
    CATEGORIES = "categories"
    ORDERS = "orders"
    INVOICES = "invoices"
    USERS = "users"

    # Ticket taxonomy (settings/ticket/*)
    DEVICE_TYPES = "settings_ticket_device_types"
    BRANDS = "settings_ticket_brands"
    MODELS = "settings_ticket_models"
    TASKS = "settings_ticket_tasks"

    # Postgres function performing a conditional stock adjustment
    ADJUST_STOCK_FN = "adjust_product_stock"
