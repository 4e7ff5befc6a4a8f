"""Card trees: storage, batch payload resolution, and display assembly."""

from cardtrees.trees.assembler import TreeAssembler
from cardtrees.trees.resolver import PayloadResolver
from cardtrees.trees.store import TreeStore

__all__ = ["PayloadResolver", "TreeAssembler", "TreeStore"]
