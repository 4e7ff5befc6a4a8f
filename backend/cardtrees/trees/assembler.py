"""TreeAssembler: turns a tree's stored parent pointers into a display order.

Nodes come out in pre-order with siblings sorted by (position, id). A node
whose parent is missing from the tree (deletes do not cascade) is promoted to
the root level, so every stored node is shown exactly once.
"""

from collections import defaultdict

from cardtrees.models import CardTree, CardTreeNode
from cardtrees.trees.store import TreeStore


def _sibling_key(node: CardTreeNode) -> tuple[int, int]:
    return (node.position, node.id)


def flatten_nodes(nodes: list[CardTreeNode]) -> list[CardTreeNode]:
    """Return nodes in pre-order with depth and indent set."""
    present = {n.id for n in nodes}
    children: dict[int | None, list[CardTreeNode]] = defaultdict(list)
    for node in nodes:
        parent = node.parent_id if node.parent_id in present else None
        children[parent].append(node)
    for group in children.values():
        group.sort(key=_sibling_key)

    ordered: list[CardTreeNode] = []
    visited: set[int] = set()

    def walk(root: CardTreeNode) -> None:
        stack = [(root, 0)]
        while stack:
            node, depth = stack.pop()
            if node.id in visited:
                continue
            visited.add(node.id)
            node.depth = depth
            node.indent = depth
            ordered.append(node)
            # Reversed so the lowest (position, id) is popped first.
            for child in reversed(children.get(node.id, [])):
                stack.append((child, depth + 1))

    for root in children.get(None, []):
        walk(root)

    # Only reachable when stored parent pointers form a loop.
    for node in sorted(nodes, key=lambda n: n.id):
        if node.id not in visited:
            walk(node)

    return ordered


class TreeAssembler:
    def __init__(self, store: TreeStore) -> None:
        self._store = store

    async def load(self, tree_id: int) -> CardTree:
        """Fetch a tree and replace its nodes with the assembled ordering."""
        tree = await self._store.get_tree(tree_id)
        return self.assemble(tree)

    @staticmethod
    def assemble(tree: CardTree) -> CardTree:
        tree.nodes = flatten_nodes(tree.nodes)
        return tree
