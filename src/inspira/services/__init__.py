# src/inspira/services/__init__.py
"""Business logic services for the Inspira application."""
