"""Essembi ticketing for Microsoft Teams: compose-box ticket creation and channel commands."""

__version__ = "1.0.0"
