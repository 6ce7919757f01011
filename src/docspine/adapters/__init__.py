"""Source adapters shipped with docspine.

Only the in-memory adapter lives here; production stores implement
:class:`~docspine.core.protocols.SourceAdapter` in their own packages.
"""

from docspine.adapters.memory import MemoryAdapter, MemoryStore, matches

__all__ = ["MemoryAdapter", "MemoryStore", "matches"]
