"""Inventory Windows hosts over CIM and render HTML/CSV reports."""

__version__ = "1.0.0"
