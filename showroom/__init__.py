"""Showroom: authentication and authorization core for the storefront and back office."""

__version__ = "0.1.0"
