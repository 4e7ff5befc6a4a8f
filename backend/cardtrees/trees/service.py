"""Card tree service: the request-facing operations behind the REST routes.

Writes go through PayloadResolver or TreeStore; reads come back through
TreeAssembler. Ownership checks (node under tree, parent in the same tree,
annotation under node) run here, inside the same transaction as the write
they guard.
"""

from pathlib import Path

import yaml

from cardtrees.db.connection import Database
from cardtrees.errors import CrossTreeError, ValidationError
from cardtrees.models import CardTree, CardTreeAnnotation, CardTreeNode, ScopeType
from cardtrees.trees.assembler import TreeAssembler
from cardtrees.trees.resolver import PayloadResolver, parse_tree_payload
from cardtrees.trees.schemas import (
    AnnotationKindsResponse,
    CreateAnnotationRequest,
    CreateNodeRequest,
    CreateTreeRequest,
    UpdateNodeRequest,
)
from cardtrees.trees.store import TreeStore

_KINDS_PATH = Path(__file__).parent.parent / "annotation_kinds.yml"


def load_annotation_kinds(path: Path = _KINDS_PATH) -> list[str]:
    """Base annotation kinds from the taxonomy file. Missing file means none."""
    if not path.exists():
        return []
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return list(data.get("kinds", []))


class CardTreeService:
    def __init__(
        self,
        db: Database,
        store: TreeStore,
        resolver: PayloadResolver,
        assembler: TreeAssembler,
        base_kinds: list[str] | None = None,
    ) -> None:
        self._db = db
        self._store = store
        self._resolver = resolver
        self._assembler = assembler
        self._base_kinds = base_kinds or []

    @classmethod
    def from_database(cls, db: Database, max_payload_nodes: int = 500) -> "CardTreeService":
        """Wire a store, resolver and assembler around one database.

        The annotation taxonomy is read here, once per service.
        """
        store = TreeStore(db)
        return cls(
            db,
            store,
            PayloadResolver(db, store, max_nodes=max_payload_nodes),
            TreeAssembler(store),
            base_kinds=load_annotation_kinds(),
        )

    # -- Trees --

    async def create_tree(
        self, scope_type: ScopeType, scope_id: int, request: CreateTreeRequest, user: str,
    ) -> CardTree:
        return await self._store.create_tree(
            scope_type, scope_id, request.title, request.description, user, request.is_primary,
        )

    async def list_trees(
        self, scope_type: ScopeType, scope_id: int, include_nodes: bool = False,
    ) -> list[CardTree]:
        trees = await self._store.list_trees(scope_type, scope_id, include_nodes=include_nodes)
        if include_nodes:
            trees = [self._assembler.assemble(t) for t in trees]
        return trees

    async def get_tree(self, tree_id: int) -> CardTree:
        return await self._assembler.load(tree_id)

    # -- Post-bundled payloads --

    async def attach_post_payload(
        self, post_id: int, raw: str | dict | None, user: str,
    ) -> list[CardTree]:
        """Resolve a tree_payload submitted with a post. Annotations cite the post."""
        payload = parse_tree_payload(raw)
        if payload is None:
            return []
        return await self._resolver.apply(
            payload, "post", post_id, user, source_post_id=post_id,
        )

    # -- Nodes --

    async def create_node(
        self, tree_id: int, request: CreateNodeRequest, user: str,
    ) -> CardTreeNode:
        if not request.card_name.strip():
            raise ValidationError("Card name is required")
        async with self._db.transaction():
            await self._store.require_tree(tree_id)
            if request.parent_id is not None:
                await self._check_parent(tree_id, request.parent_id)
            return await self._store.create_node(
                tree_id, request.parent_id, request.card_name, request.position, user,
            )

    async def update_node(
        self, tree_id: int, node_id: int, request: UpdateNodeRequest,
    ) -> None:
        if not request.card_name.strip():
            raise ValidationError("Card name is required")
        async with self._db.transaction():
            await self._check_owner(tree_id, node_id)
            if request.parent_id is not None:
                await self._check_parent(tree_id, request.parent_id, moving=node_id)
            await self._store.update_node(
                node_id, request.parent_id, request.card_name, request.position,
            )

    async def delete_node(self, tree_id: int, node_id: int) -> None:
        async with self._db.transaction():
            await self._check_owner(tree_id, node_id)
            await self._store.delete_node(node_id)

    # -- Annotations --

    async def create_annotation(
        self, tree_id: int, node_id: int, request: CreateAnnotationRequest, user: str,
    ) -> CardTreeAnnotation:
        if not request.body.strip():
            raise ValidationError("Body is required")
        async with self._db.transaction():
            await self._check_owner(tree_id, node_id)
            return await self._store.create_annotation(
                node_id,
                request.kind,
                request.body,
                request.label,
                request.tags,
                request.source_post_id,
                user,
            )

    async def delete_annotation(self, tree_id: int, node_id: int, annotation_id: int) -> None:
        async with self._db.transaction():
            await self._check_owner(tree_id, node_id)
            annotation = await self._store.get_annotation(annotation_id)
            if annotation.node_id != node_id:
                raise CrossTreeError(
                    f"Annotation {annotation_id} does not belong to node {node_id}"
                )
            await self._store.delete_annotation(annotation_id)

    async def get_annotation_kinds(self, tree_id: int) -> AnnotationKindsResponse:
        """Base kinds from the taxonomy file plus the kinds already used in the tree."""
        await self._store.require_tree(tree_id)
        used_kinds = await self._store.list_used_kinds(tree_id)
        return AnnotationKindsResponse(base_kinds=list(self._base_kinds), used_kinds=used_kinds)

    # -- Ownership checks --

    async def _check_owner(self, tree_id: int, node_id: int) -> None:
        owner = await self._store.get_node_tree_id(node_id)
        if owner != tree_id:
            raise CrossTreeError(f"Node {node_id} does not belong to tree {tree_id}")

    async def _check_parent(
        self, tree_id: int, parent_id: int, moving: int | None = None,
    ) -> None:
        """Parent must live in the same tree and, when re-parenting, not below the node."""
        owner = await self._store.get_node_tree_id(parent_id)
        if owner != tree_id:
            raise CrossTreeError(
                f"Parent node {parent_id} belongs to tree {owner}, not tree {tree_id}"
            )
        if moving is None:
            return

        parents = await self._store.get_parent_map(tree_id)
        current: int | None = parent_id
        seen: set[int] = set()
        while current is not None and current not in seen:
            if current == moving:
                raise ValidationError(
                    f"Node {moving} cannot be moved under itself or its descendant {parent_id}"
                )
            seen.add(current)
            current = parents.get(current)
