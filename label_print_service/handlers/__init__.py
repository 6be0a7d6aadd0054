"""
Label Print Service Dialects
============================

Command templates for the supported printer languages.
"""

from typing import Optional

from .base import Dialect, LabelLayout
from .ezpl import EZPL
from .zpl import ZPL

__all__ = ['Dialect', 'LabelLayout', 'EZPL', 'ZPL', 'DIALECTS', 'get_dialect', 'match_dialect']

# Dialect registry, in identification order: EZPL status frames are checked
# before the looser ZPL tokens.
DIALECTS = {
    'ezpl': EZPL,
    'zpl': ZPL,
}


def get_dialect(name: str) -> Dialect:
    """Get dialect by name."""
    dialect = DIALECTS.get((name or '').lower())
    if dialect is None:
        raise ValueError(f'Unknown dialect {name!r}. Valid: {list(DIALECTS.keys())}')
    return dialect


def match_dialect(reply: str) -> Optional[Dialect]:
    """Return the first dialect whose signature matches a raw status reply."""
    for dialect in DIALECTS.values():
        if dialect.matches(reply):
            return dialect
    return None
