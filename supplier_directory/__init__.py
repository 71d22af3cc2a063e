"""Supplier directory service."""
