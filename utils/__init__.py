"""Logging, retry and tracing helpers for the application wizard."""
