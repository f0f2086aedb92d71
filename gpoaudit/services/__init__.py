"""Auditing services: capability loading, directory access, classification, export."""
