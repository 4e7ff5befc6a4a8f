"""PayloadResolver: materializes temp-id-linked tree batches in dependency order.

A batch describes one or more trees whose nodes point at their parents by
caller-chosen temp ids, since real ids do not exist until the rows are written.
The whole payload is validated and every tree's dependency graph is resolved
before the first write; the writes for all trees then run in one transaction.
"""

import json
import logging
from collections import defaultdict, deque

from pydantic import ValidationError as PydanticValidationError

from cardtrees.db.connection import Database
from cardtrees.errors import ResolutionError, ValidationError
from cardtrees.models import CardTree, ScopeType
from cardtrees.trees.assembler import TreeAssembler
from cardtrees.trees.schemas import TreePayload, TreePayloadNode, TreePayloadTree
from cardtrees.trees.store import TreeStore

logger = logging.getLogger(__name__)


def parse_tree_payload(raw: str | dict | None) -> TreePayload | None:
    """Decode a tree_payload field. Returns None when there is nothing to create.

    Raises ValidationError for malformed JSON or a shape mismatch.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ValidationError(f"Invalid tree payload JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ValidationError("Tree payload must be a JSON object")
    try:
        payload = TreePayload.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid tree payload: {e}") from e
    if not payload.trees:
        return None
    return payload


def resolve_order(tree: TreePayloadTree, tree_index: int = 0) -> list[TreePayloadNode]:
    """Order a tree's node descriptors so every parent precedes its children.

    Kahn's algorithm over parent -> children adjacency keyed by temp id; ready
    descriptors are taken in input order. Raises ResolutionError naming the
    dangling parent temp ids and each cycle if any descriptor is left over.
    """
    by_id = {n.temp_id: n for n in tree.nodes}
    children: dict[str, list[TreePayloadNode]] = defaultdict(list)
    ready: deque[TreePayloadNode] = deque()
    for node in tree.nodes:
        if node.parent_temp_id is None:
            ready.append(node)
        elif node.parent_temp_id in by_id:
            children[node.parent_temp_id].append(node)

    order: list[TreePayloadNode] = []
    while ready:
        node = ready.popleft()
        order.append(node)
        ready.extend(children.pop(node.temp_id, []))

    if len(order) == len(tree.nodes):
        return order

    resolved = {n.temp_id for n in order}
    leftover = [n for n in tree.nodes if n.temp_id not in resolved]
    dangling, cycles = _diagnose(leftover, by_id)
    raise ResolutionError(tree_index, dangling=dangling, cycles=cycles)


def _diagnose(
    leftover: list[TreePayloadNode], by_id: dict[str, TreePayloadNode],
) -> tuple[list[str], list[list[str]]]:
    """Walk parent chains of unresolved descriptors.

    Each chain either ends at a temp id missing from the tree (dangling) or
    loops back on itself (cycle). Every dangling id and cycle is reported once.
    """
    dangling: list[str] = []
    cycles: list[list[str]] = []
    walked: set[str] = set()

    for start in leftover:
        path: list[str] = []
        on_path: set[str] = set()
        current: str | None = start.temp_id
        while current in by_id and current not in walked and current not in on_path:
            path.append(current)
            on_path.add(current)
            current = by_id[current].parent_temp_id

        if current in on_path:
            cycles.append(path[path.index(current):])
        elif current is not None and current not in by_id and current not in dangling:
            dangling.append(current)
        walked.update(path)

    return dangling, cycles


class PayloadResolver:
    def __init__(self, db: Database, store: TreeStore, max_nodes: int = 500) -> None:
        self._db = db
        self._store = store
        self._max_nodes = max_nodes

    def validate(self, payload: TreePayload) -> None:
        """Check every required field in the batch before anything is written."""
        total = sum(len(t.nodes) for t in payload.trees)
        if total > self._max_nodes:
            raise ValidationError(
                f"Tree payload has {total} nodes; at most {self._max_nodes} allowed"
            )

        seen: set[str] = set()
        for i, tree in enumerate(payload.trees):
            if not tree.title:
                raise ValidationError(f"Tree {i}: title is required")
            for node in tree.nodes:
                if not node.temp_id:
                    raise ValidationError(f"Tree {i}: node temp id is required")
                if node.temp_id in seen:
                    raise ValidationError(f"Tree {i}: duplicate temp id {node.temp_id!r}")
                seen.add(node.temp_id)
                if not node.card_name:
                    raise ValidationError(
                        f"Tree {i}: card name is required for node {node.temp_id!r}"
                    )
                for annotation in node.annotations:
                    if not annotation.body:
                        raise ValidationError(
                            f"Tree {i}: annotation body is required on node {node.temp_id!r}"
                        )

    def plan(self, payload: TreePayload) -> list[list[TreePayloadNode]]:
        """Validate the batch and return each tree's nodes in creation order."""
        self.validate(payload)
        return [resolve_order(tree, i) for i, tree in enumerate(payload.trees)]

    async def apply(
        self,
        payload: TreePayload,
        scope_type: ScopeType,
        scope_id: int,
        creator: str,
        source_post_id: int | None = None,
    ) -> list[CardTree]:
        """Create every tree in the payload, or none of them.

        Returns the created trees assembled: nodes in display order with depth set.
        """
        try:
            orders = self.plan(payload)
        except (ValidationError, ResolutionError) as e:
            logger.warning(
                "Rejected tree payload for %s %s from %s: %s", scope_type, scope_id, creator, e
            )
            raise

        created: list[CardTree] = []
        async with self._db.transaction():
            for spec, order in zip(payload.trees, orders):
                tree = await self._store.create_tree(
                    scope_type, scope_id, spec.title, spec.description, creator, spec.is_primary,
                )
                real_ids: dict[str, int] = {}
                for descriptor in order:
                    parent_id = (
                        real_ids[descriptor.parent_temp_id]
                        if descriptor.parent_temp_id is not None
                        else None
                    )
                    node = await self._store.create_node(
                        tree.id, parent_id, descriptor.card_name, descriptor.position, creator,
                    )
                    real_ids[descriptor.temp_id] = node.id
                    for annotation in descriptor.annotations:
                        node.annotations.append(await self._store.create_annotation(
                            node.id,
                            annotation.kind,
                            annotation.body,
                            annotation.label,
                            annotation.tags,
                            source_post_id,
                            creator,
                        ))
                    tree.nodes.append(node)
                created.append(tree)

        for tree in created:
            logger.info(
                "Created card tree %s (%d nodes) for %s %s",
                tree.id, len(tree.nodes), scope_type, scope_id,
            )
        return [TreeAssembler.assemble(tree) for tree in created]
