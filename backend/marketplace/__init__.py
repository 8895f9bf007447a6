"""
Artisan marketplace backend.

Order lifecycle management for customer purchases and artisan inventory
replenishment orders.
"""

__version__ = "1.0.0"
