"""Role-based access control service for the kitchen ERP."""

__version__ = "0.1.0"
