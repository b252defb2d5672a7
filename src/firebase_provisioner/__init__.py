"""Automatic Firebase project provisioning service and client helpers."""

__version__ = "0.1.0"
