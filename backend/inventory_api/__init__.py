"""Inventory tracking API: products, CSV import/export and stock audit logs."""

__version__ = "1.0.0"
