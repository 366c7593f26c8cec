"""Core helpers shared by the wizard engine."""
