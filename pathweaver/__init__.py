"""Pathweaver: turn-resolution core for a narrative survival RPG."""

__version__ = "0.1.0"
