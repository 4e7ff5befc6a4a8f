"""Tests for flattening stored parent pointers into display order."""

import pytest

from cardtrees.errors import TreeNotFoundError
from cardtrees.trees.assembler import flatten_nodes
from tests.fixtures import stored_node


def names(nodes):
    return [n.card_name for n in nodes]


def depths(nodes):
    return {n.card_name: n.depth for n in nodes}


class TestFlattenNodes:
    def test_empty(self):
        assert flatten_nodes([]) == []

    def test_pre_order_with_depth(self):
        nodes = [
            stored_node(1),
            stored_node(2, parent_id=1),
            stored_node(3, parent_id=2),
            stored_node(4, parent_id=1, position=1),
        ]
        ordered = flatten_nodes(nodes)
        assert names(ordered) == ["n1", "n2", "n3", "n4"]
        assert depths(ordered) == {"n1": 0, "n2": 1, "n3": 2, "n4": 1}
        assert all(n.indent == n.depth for n in ordered)

    def test_siblings_sorted_by_position_then_id(self):
        nodes = [
            stored_node(5, position=1),
            stored_node(3, position=1),
            stored_node(9, position=0),
        ]
        assert names(flatten_nodes(nodes)) == ["n9", "n3", "n5"]

    def test_input_order_does_not_matter(self):
        nodes = [
            stored_node(3, parent_id=2),
            stored_node(2, parent_id=1),
            stored_node(1),
        ]
        ordered = flatten_nodes(nodes)
        assert names(ordered) == ["n1", "n2", "n3"]
        assert depths(ordered) == {"n1": 0, "n2": 1, "n3": 2}

    def test_missing_parent_promotes_to_root(self):
        """A child of a deleted node is shown at depth 0 with its subtree intact."""
        nodes = [
            stored_node(1, position=0),
            stored_node(3, parent_id=2, position=1),
            stored_node(4, parent_id=3),
        ]
        ordered = flatten_nodes(nodes)
        assert names(ordered) == ["n1", "n3", "n4"]
        assert depths(ordered) == {"n1": 0, "n3": 0, "n4": 1}

    def test_stored_cycle_shows_every_node_once(self):
        nodes = [
            stored_node(1),
            stored_node(2, parent_id=3),
            stored_node(3, parent_id=2),
        ]
        ordered = flatten_nodes(nodes)
        assert sorted(n.id for n in ordered) == [1, 2, 3]
        assert names(ordered) == ["n1", "n2", "n3"]
        assert depths(ordered) == {"n1": 0, "n2": 0, "n3": 1}

    def test_self_parent_is_shown(self):
        ordered = flatten_nodes([stored_node(7, parent_id=7)])
        assert names(ordered) == ["n7"]
        assert ordered[0].depth == 0

    def test_child_depth_is_parent_depth_plus_one(self):
        nodes = [stored_node(1)] + [
            stored_node(i, parent_id=i - 1, position=i % 3) for i in range(2, 12)
        ] + [stored_node(20, parent_id=4), stored_node(21, parent_id=20)]
        ordered = flatten_nodes(nodes)
        by_id = {n.id: n for n in ordered}
        assert len(ordered) == len(nodes)
        for node in ordered:
            if node.parent_id in by_id:
                assert node.depth == by_id[node.parent_id].depth + 1
            else:
                assert node.depth == 0


class TestTreeAssembler:
    async def test_load_orders_stored_tree(self, store, assembler):
        tree = await store.create_tree("board", 1, "Main Deck", "", "dana")
        second = await store.create_node(tree.id, None, "Removal", 1, "dana")
        first = await store.create_node(tree.id, None, "Ramp", 0, "dana")
        await store.create_node(tree.id, first.id, "Sol Ring", 0, "dana")
        await store.create_node(tree.id, second.id, "Swords to Plowshares", 0, "dana")

        loaded = await assembler.load(tree.id)
        assert [(n.card_name, n.depth) for n in loaded.nodes] == [
            ("Ramp", 0),
            ("Sol Ring", 1),
            ("Removal", 0),
            ("Swords to Plowshares", 1),
        ]

    async def test_load_hides_annotations_of_deleted_node(self, store, assembler):
        tree = await store.create_tree("board", 1, "Main Deck", "", "dana")
        parent = await store.create_node(tree.id, None, "Ramp", 0, "dana")
        child = await store.create_node(tree.id, parent.id, "Sol Ring", 0, "dana")
        await store.create_annotation(parent.id, "note", "Gone soon", "", "", None, "dana")
        await store.create_annotation(child.id, "combo", "Pairs with Vault", "", "", None, "dana")

        await store.delete_node(parent.id)
        loaded = await assembler.load(tree.id)

        assert [n.card_name for n in loaded.nodes] == ["Sol Ring"]
        assert loaded.nodes[0].depth == 0
        assert [a.body for a in loaded.nodes[0].annotations] == ["Pairs with Vault"]

    async def test_load_missing_tree(self, assembler):
        with pytest.raises(TreeNotFoundError):
            await assembler.load(999)
