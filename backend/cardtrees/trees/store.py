"""TreeStore: CRUD over card trees, nodes, and annotations.

No business logic beyond referential lookups. Every mutating call writes
straight through to the database; callers that need several calls to be
atomic wrap them in ``Database.transaction()``.
"""

from datetime import UTC, datetime

from cardtrees.db.connection import Database
from cardtrees.errors import (
    AnnotationNotFoundError,
    NodeNotFoundError,
    TreeNotFoundError,
    ValidationError,
)
from cardtrees.models import CardTree, CardTreeAnnotation, CardTreeNode, ScopeType


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _required(value: str | None, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(message)
    return value


class TreeStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    # -- Trees --

    async def create_tree(
        self,
        scope_type: ScopeType,
        scope_id: int,
        title: str,
        description: str | None,
        creator: str,
        is_primary: bool = False,
    ) -> CardTree:
        """Insert a tree row. Raises ValidationError if the title is blank."""
        title = _required(title, "Title is required")
        now = _now()
        cursor = await self._db.execute(
            """
            INSERT INTO card_trees
                (scope_type, scope_id, title, description, created_by,
                 created_at, updated_at, is_primary)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                scope_type,
                scope_id,
                title,
                (description or "").strip(),
                creator,
                now,
                now,
                int(is_primary),
            ),
        )
        assert cursor.lastrowid is not None
        return CardTree(
            id=cursor.lastrowid,
            scope_type=scope_type,
            scope_id=scope_id,
            title=title,
            description=(description or "").strip(),
            created_by=creator,
            created_at=now,
            updated_at=now,
            is_primary=is_primary,
        )

    async def get_tree(self, tree_id: int) -> CardTree:
        """Load a tree with its nodes (id order) and their annotations."""
        row = await self._db.fetchone("SELECT * FROM card_trees WHERE id = ?", (tree_id,))
        if row is None:
            raise TreeNotFoundError(tree_id)
        tree = self._tree_from_row(row)
        tree.nodes = await self._load_nodes(tree_id)
        return tree

    async def list_trees(
        self, scope_type: ScopeType, scope_id: int, include_nodes: bool = False,
    ) -> list[CardTree]:
        rows = await self._db.fetchall(
            "SELECT * FROM card_trees WHERE scope_type = ? AND scope_id = ? ORDER BY id",
            (scope_type, scope_id),
        )
        trees = [self._tree_from_row(r) for r in rows]
        if include_nodes:
            for tree in trees:
                tree.nodes = await self._load_nodes(tree.id)
        return trees

    async def require_tree(self, tree_id: int) -> None:
        """Raise TreeNotFoundError unless the tree exists."""
        row = await self._db.fetchone("SELECT 1 FROM card_trees WHERE id = ?", (tree_id,))
        if row is None:
            raise TreeNotFoundError(tree_id)

    async def _touch_tree(self, tree_id: int) -> None:
        await self._db.execute(
            "UPDATE card_trees SET updated_at = ? WHERE id = ?", (_now(), tree_id)
        )

    # -- Nodes --

    async def create_node(
        self,
        tree_id: int,
        parent_id: int | None,
        card_name: str,
        position: int,
        creator: str,
    ) -> CardTreeNode:
        """Insert a node row.

        Does not check that parent_id belongs to tree_id; callers do that.
        """
        card_name = _required(card_name, "Card name is required")
        now = _now()
        cursor = await self._db.execute(
            """
            INSERT INTO card_tree_nodes
                (tree_id, parent_id, card_name, position, created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (tree_id, parent_id, card_name, position, creator, now, now),
        )
        assert cursor.lastrowid is not None
        await self._touch_tree(tree_id)
        return CardTreeNode(
            id=cursor.lastrowid,
            tree_id=tree_id,
            parent_id=parent_id,
            card_name=card_name,
            position=position,
            created_by=creator,
            created_at=now,
            updated_at=now,
        )

    async def get_node_tree_id(self, node_id: int) -> int:
        """Return the owning tree of a node. Raises NodeNotFoundError."""
        row = await self._db.fetchone(
            "SELECT tree_id FROM card_tree_nodes WHERE id = ?", (node_id,)
        )
        if row is None:
            raise NodeNotFoundError(node_id)
        return row["tree_id"]

    async def get_parent_map(self, tree_id: int) -> dict[int, int | None]:
        """node_id -> parent_id for every node stored under the tree."""
        rows = await self._db.fetchall(
            "SELECT id, parent_id FROM card_tree_nodes WHERE tree_id = ?", (tree_id,)
        )
        return {r["id"]: r["parent_id"] for r in rows}

    async def update_node(
        self, node_id: int, parent_id: int | None, card_name: str, position: int,
    ) -> None:
        card_name = _required(card_name, "Card name is required")
        tree_id = await self.get_node_tree_id(node_id)
        await self._db.execute(
            """
            UPDATE card_tree_nodes
            SET parent_id = ?, card_name = ?, position = ?, updated_at = ?
            WHERE id = ?
            """,
            (parent_id, card_name, position, _now(), node_id),
        )
        await self._touch_tree(tree_id)

    async def delete_node(self, node_id: int) -> None:
        """Delete one node row. Children and annotations are left in place."""
        tree_id = await self.get_node_tree_id(node_id)
        await self._db.execute("DELETE FROM card_tree_nodes WHERE id = ?", (node_id,))
        await self._touch_tree(tree_id)

    # -- Annotations --

    async def create_annotation(
        self,
        node_id: int,
        kind: str | None,
        body: str,
        label: str | None,
        tags: str | None,
        source_post_id: int | None,
        creator: str,
    ) -> CardTreeAnnotation:
        """Insert an annotation on an existing node. Blank kind becomes "note"."""
        body = _required(body, "Body is required")
        kind = (kind or "").strip() or "note"
        label = (label or "").strip()
        tags = (tags or "").strip()
        await self.get_node_tree_id(node_id)
        now = _now()
        cursor = await self._db.execute(
            """
            INSERT INTO card_tree_annotations
                (node_id, kind, body, label, tags, source_post_id, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (node_id, kind, body, label, tags, source_post_id, creator, now),
        )
        assert cursor.lastrowid is not None
        return CardTreeAnnotation(
            id=cursor.lastrowid,
            node_id=node_id,
            kind=kind,
            body=body,
            label=label,
            tags=tags,
            source_post_id=source_post_id,
            created_by=creator,
            created_at=now,
        )

    async def get_annotation(self, annotation_id: int) -> CardTreeAnnotation:
        row = await self._db.fetchone(
            "SELECT * FROM card_tree_annotations WHERE id = ?", (annotation_id,)
        )
        if row is None:
            raise AnnotationNotFoundError(annotation_id)
        return self._annotation_from_row(row)

    async def delete_annotation(self, annotation_id: int) -> None:
        cursor = await self._db.execute(
            "DELETE FROM card_tree_annotations WHERE id = ?", (annotation_id,)
        )
        if cursor.rowcount == 0:
            raise AnnotationNotFoundError(annotation_id)

    async def list_used_kinds(self, tree_id: int) -> list[str]:
        """Distinct annotation kinds used on nodes of a tree, alphabetical."""
        rows = await self._db.fetchall(
            """
            SELECT DISTINCT a.kind FROM card_tree_annotations a
            JOIN card_tree_nodes n ON n.id = a.node_id
            WHERE n.tree_id = ?
            ORDER BY a.kind
            """,
            (tree_id,),
        )
        return [r["kind"] for r in rows]

    # -- Row mapping --

    async def _load_nodes(self, tree_id: int) -> list[CardTreeNode]:
        node_rows = await self._db.fetchall(
            "SELECT * FROM card_tree_nodes WHERE tree_id = ? ORDER BY id", (tree_id,)
        )
        nodes = [self._node_from_row(r) for r in node_rows]
        if not nodes:
            return nodes

        ann_rows = await self._db.fetchall(
            """
            SELECT a.* FROM card_tree_annotations a
            JOIN card_tree_nodes n ON n.id = a.node_id
            WHERE n.tree_id = ?
            ORDER BY a.id
            """,
            (tree_id,),
        )
        by_node = {n.id: n for n in nodes}
        for r in ann_rows:
            by_node[r["node_id"]].annotations.append(self._annotation_from_row(r))
        return nodes

    @staticmethod
    def _tree_from_row(row) -> CardTree:
        return CardTree(
            id=row["id"],
            scope_type=row["scope_type"],
            scope_id=row["scope_id"],
            title=row["title"],
            description=row["description"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            is_primary=bool(row["is_primary"]),
        )

    @staticmethod
    def _node_from_row(row) -> CardTreeNode:
        return CardTreeNode(
            id=row["id"],
            tree_id=row["tree_id"],
            parent_id=row["parent_id"],
            card_name=row["card_name"],
            position=row["position"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _annotation_from_row(row) -> CardTreeAnnotation:
        return CardTreeAnnotation(
            id=row["id"],
            node_id=row["node_id"],
            kind=row["kind"],
            body=row["body"],
            label=row["label"],
            tags=row["tags"],
            source_post_id=row["source_post_id"],
            created_by=row["created_by"],
            created_at=row["created_at"],
        )
