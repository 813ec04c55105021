"""
Repair Desk Package

Back-office core for a device-repair and point-of-sale business:
- Client, ticket, product, order and invoice stores
- Session and role gate on top of the hosted auth provider
- Receipt/invoice totals and dashboard reports
- FastAPI operator console
"""

__version__ = "1.0.0"
__author__ = "Repair Desk Team"

# Stores and the API are imported on-demand to keep the supabase client optional at import time
