"""Tests that every failure reaches the client as {"error": code, "detail": msg}."""

import logging

from cardtrees.errors import StorageError
from cardtrees.trees.store import TreeStore
from tests.fixtures import create_board_tree, create_outline

GENERIC_STORAGE_DETAIL = "A storage error occurred. Please retry."


class TestRequestValidation:
    async def test_malformed_json_body(self, client):
        tree = await create_board_tree(client)
        resp = await client.post(
            f"/trees/{tree['id']}/nodes",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        data = resp.json()
        assert data["error"] == "validation_error"
        assert isinstance(data["detail"], str)

    async def test_wrongly_typed_field(self, client):
        tree = await create_board_tree(client)
        resp = await client.post(
            f"/trees/{tree['id']}/nodes", json={"card_name": "Ponder", "position": "abc"},
        )
        assert resp.status_code == 400
        data = resp.json()
        assert data["error"] == "validation_error"
        assert "position" in data["detail"]

    async def test_non_object_tree_payload(self, client):
        resp = await client.post("/posts/30/trees", json={"tree_payload": [1, 2]})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"
        assert (await client.get("/posts/30/trees")).json() == []

    async def test_non_object_tree_payload_as_string(self, client):
        """The encoded and decoded forms of the same bad payload fail the same way."""
        resp = await client.post("/posts/31/trees", json={"tree_payload": "[1, 2]"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    async def test_bad_path_parameter(self, client):
        resp = await client.get("/trees/not-a-number")
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"


class TestStorageFailures:
    async def test_read_failure_is_generic_500(self, client, monkeypatch, caplog):
        async def broken(self, tree_id):
            raise StorageError("fetchone")

        monkeypatch.setattr(TreeStore, "get_tree", broken)

        with caplog.at_level(logging.ERROR, logger="cardtrees.error_handlers"):
            resp = await client.get("/trees/1")

        assert resp.status_code == 500
        assert resp.json() == {"error": "storage_error", "detail": GENERIC_STORAGE_DETAIL}
        assert "/trees/1" in caplog.text
        assert "fetchone" in caplog.text

    async def test_write_failure_rolls_back_and_is_generic_500(self, client, monkeypatch):
        outline = await create_outline(client)

        async def broken(self, *args, **kwargs):
            raise StorageError("execute")

        monkeypatch.setattr(TreeStore, "create_annotation", broken)
        resp = await client.post(
            f"/trees/{outline['tree_id']}/nodes/{outline['node_ids']['ramp']}/annotations",
            json={"body": "Never stored"},
        )
        assert resp.status_code == 500
        assert resp.json() == {"error": "storage_error", "detail": GENERIC_STORAGE_DETAIL}

        monkeypatch.undo()
        tree = (await client.get(f"/trees/{outline['tree_id']}")).json()
        assert all(n["annotations"] == [] for n in tree["nodes"])
