"""Database Package — the declarative Base every Papermark model table hangs off.

Engines and sessions live in infrastructure/database.py.
"""
