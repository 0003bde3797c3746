from __future__ import annotations
"""server/pixoverlay/infrastructure/persistence/database/models/__init__.py
~~~~~~~~~~~~~~~~~~~~~~~~
Modèles ORM.
"""

from .kv_entry import KeyValueEntry

__all__ = ["KeyValueEntry"]
