"""Papermark API Package — document sharing with access-controlled links and data rooms.

Invariants:
    - Package root has no import side-effects
"""

__version__ = "1.0.0"
