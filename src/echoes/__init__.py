"""Echoes: memories tied to places, unlocked when you return."""

__version__ = "0.1.0"
