"""Shipsy: multi-tenant shipment and customer management API."""

__version__ = "1.0.0"
