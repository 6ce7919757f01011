"""
Docspine Compose — the population-resolution and document-lifecycle engine.

MODULE MAP (recommended reading order)
──────────────────────────────────────
1. sources.py    ─ SourceDeclaration, Multiplicity, SourceRegistry
2. matching.py   ─ SingleMatch / ManyMatch / FanOut variants
3. context.py    ─ immutable SourceContext flowing step-to-step
4. query.py      ─ Query declarations and their fluent builder
5. resolver.py   ─ PopulationResolver: steps → adapter fetches → rows
6. writes.py     ─ WriteInstruction, DeletionReport
7. document.py   ─ immutable Document (mutate / delete)
8. model.py      ─ ModelBuilder, ModelConfig, CompositeModel
"""

from docspine.compose.context import SourceContext, ValueKind
from docspine.compose.document import Document
from docspine.compose.matching import FanOut, ManyMatch, Match, SingleMatch
from docspine.compose.model import CompositeModel, ModelBuilder, ModelConfig
from docspine.compose.query import PopulationStep, Query
from docspine.compose.resolver import PopulationResolver, Resolution
from docspine.compose.sources import Multiplicity, SourceDeclaration, SourceRegistry
from docspine.compose.writes import DeletionReport, WriteInstruction, WriteOperation

__all__ = [
    "CompositeModel",
    "DeletionReport",
    "Document",
    "FanOut",
    "ManyMatch",
    "Match",
    "ModelBuilder",
    "ModelConfig",
    "Multiplicity",
    "PopulationResolver",
    "PopulationStep",
    "Query",
    "Resolution",
    "SingleMatch",
    "SourceContext",
    "SourceDeclaration",
    "SourceRegistry",
    "ValueKind",
    "WriteInstruction",
    "WriteOperation",
]
