"""Parqueo: transactional parking slot reservations."""

__version__ = "1.0.0"
