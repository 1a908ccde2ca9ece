"""Signed HTTP relay server for a Raspberry Pi garage door."""

__version__ = "4.2.0"
