"""Billing records."""
