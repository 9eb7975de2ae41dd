"""
Societies blueprint package.

Routes live in routes.py (list, detail, status actions, CSV export) and
editor.py (the tabbed create / edit screen).
"""

from .routes import societies_bp  # noqa: F401
from . import editor  # noqa: F401  (registers editor routes on societies_bp)
