"""Shared test helpers: payload builders and API shortcuts."""

from typing import Any

from httpx import AsyncClient

from cardtrees.models import CardTreeNode
from cardtrees.trees.schemas import TreePayload


def payload_node(
    temp_id: str,
    card_name: str | None = None,
    parent: str | None = None,
    position: int = 0,
    annotations: list[dict] | None = None,
) -> dict[str, Any]:
    """One node descriptor. card_name defaults to the temp id."""
    node: dict[str, Any] = {
        "temp_id": temp_id,
        "card_name": card_name if card_name is not None else temp_id,
        "position": position,
        "annotations": annotations or [],
    }
    if parent is not None:
        node["parent_temp_id"] = parent
    return node


def payload_tree(
    nodes: list[dict], title: str = "Main Deck", **fields: Any,
) -> dict[str, Any]:
    return {"title": title, "nodes": nodes, **fields}


def make_payload(*trees: dict) -> TreePayload:
    return TreePayload.model_validate({"trees": list(trees)})


def stored_node(
    node_id: int,
    parent_id: int | None = None,
    position: int = 0,
    tree_id: int = 1,
) -> CardTreeNode:
    """A CardTreeNode as the store would return it, named n<id>."""
    return CardTreeNode(
        id=node_id,
        tree_id=tree_id,
        parent_id=parent_id,
        card_name=f"n{node_id}",
        position=position,
        created_by="dana",
        created_at="2026-01-01T00:00:00+00:00",
        updated_at="2026-01-01T00:00:00+00:00",
    )


def depths_by_name(tree: dict) -> dict[str, int]:
    return {n["card_name"]: n["depth"] for n in tree["nodes"]}


# -- API-level helpers --


async def create_board_tree(
    client: AsyncClient,
    board_id: int = 1,
    title: str = "Main Deck",
    is_primary: bool = False,
) -> dict:
    """Create a board tree via the API and return the response JSON."""
    resp = await client.post(f"/boards/{board_id}/trees", json={
        "title": title,
        "is_primary": is_primary,
    })
    assert resp.status_code == 201
    return resp.json()


async def create_node(
    client: AsyncClient,
    tree_id: int,
    card_name: str,
    parent_id: int | None = None,
    position: int = 0,
) -> dict:
    """Create a node via the API and return the response JSON."""
    body: dict[str, Any] = {"card_name": card_name, "position": position}
    if parent_id is not None:
        body["parent_id"] = parent_id
    resp = await client.post(f"/trees/{tree_id}/nodes", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_outline(client: AsyncClient, board_id: int = 1) -> dict:
    """Create a tree: Ramp(0) -> Sol Ring -> Mana Vault, plus root Removal(1).

    Returns {"tree_id": int, "node_ids": {"ramp": int, "sol": int, "vault": int, "removal": int}}
    """
    tree = await create_board_tree(client, board_id=board_id)
    tree_id = tree["id"]
    ramp = await create_node(client, tree_id, "Ramp", position=0)
    removal = await create_node(client, tree_id, "Removal", position=1)
    sol = await create_node(client, tree_id, "Sol Ring", parent_id=ramp["id"])
    vault = await create_node(client, tree_id, "Mana Vault", parent_id=sol["id"])
    return {
        "tree_id": tree_id,
        "node_ids": {
            "ramp": ramp["id"],
            "sol": sol["id"],
            "vault": vault["id"],
            "removal": removal["id"],
        },
    }
