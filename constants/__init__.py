"""Shared key namespaces."""
