"""Inspira: a credits-based question and answer forum API."""

__version__ = "0.1.0"
