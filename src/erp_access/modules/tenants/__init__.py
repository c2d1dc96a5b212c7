"""Tenants module - tenant records referenced by roles and users."""
