"""Canonical data structures for card trees.

Defined once here, referenced everywhere else. A tree owns nodes, a node owns
annotations; ``depth`` and ``indent`` are computed on read and never stored.
"""

from typing import Literal

from pydantic import BaseModel, Field

ScopeType = Literal["board", "thread", "post"]


class CardTreeAnnotation(BaseModel):
    id: int
    node_id: int
    kind: str = "note"
    body: str
    label: str = ""
    tags: str = ""
    source_post_id: int | None = None
    created_by: str
    created_at: str


class CardTreeNode(BaseModel):
    id: int
    tree_id: int
    parent_id: int | None = None
    card_name: str
    position: int = 0
    created_by: str
    created_at: str
    updated_at: str
    depth: int = 0
    indent: int = 0
    annotations: list[CardTreeAnnotation] = Field(default_factory=list)


class CardTree(BaseModel):
    id: int
    scope_type: ScopeType
    scope_id: int
    title: str
    description: str = ""
    created_by: str
    created_at: str
    updated_at: str
    is_primary: bool = False  # advisory; several primaries may share a scope
    nodes: list[CardTreeNode] = Field(default_factory=list)
