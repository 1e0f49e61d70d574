"""目录接口的集成测试。"""

import uuid

from fastapi.testclient import TestClient

BASE = "/api/v1/directories"


def _unique(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _create(client: TestClient, name: str, parent_id=None, **extra) -> dict:
    response = client.post(BASE, json={"name": name, "parent_id": parent_id, **extra})
    assert response.status_code == 201, response.text
    payload = response.json()
    assert payload["code"] == 201
    return payload["data"]


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"] == {"status": "healthy"}
    assert response.headers.get("x-request-id")


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


def test_directory_crud_flow(client: TestClient):
    """创建、查询、更新、删除的完整流程。"""
    root_name = _unique("Docs")
    docs = _create(client, root_name, description="文档根")
    assert docs["path"] == f"/{root_name}"
    guides = _create(client, "Guides", docs["id"])
    assert guides["path"] == f"/{root_name}/Guides"

    detail = client.get(f"{BASE}/{guides['id']}")
    assert detail.status_code == 200
    assert detail.json()["data"]["document_count"] == 0

    renamed_root = _unique("Manual")
    update = client.put(f"{BASE}/{docs['id']}", json={"name": renamed_root})
    assert update.status_code == 200
    assert update.json()["data"]["path"] == f"/{renamed_root}"
    assert update.json()["data"]["description"] == "文档根"

    moved_child = client.get(f"{BASE}/{guides['id']}").json()["data"]
    assert moved_child["path"] == f"/{renamed_root}/Guides"

    check = client.get(f"{BASE}/{docs['id']}/delete-check")
    assert check.status_code == 200
    assert check.json()["data"]["can_delete"] is False

    blocked = client.delete(f"{BASE}/{docs['id']}")
    assert blocked.status_code == 400
    body = blocked.json()
    assert body["data"]["error"] == "NOT_EMPTY"
    assert body["data"]["children_count"] == 1

    assert client.delete(f"{BASE}/{guides['id']}").status_code == 200
    assert client.delete(f"{BASE}/{docs['id']}").status_code == 200

    missing = client.get(f"{BASE}/{docs['id']}")
    assert missing.status_code == 404
    assert missing.json()["data"]["error"] == "NOT_FOUND"


def test_update_with_explicit_null_parent_moves_to_root(client: TestClient):
    parent = _create(client, _unique("Parent"))
    child_name = _unique("Child")
    child = _create(client, child_name, parent["id"])

    untouched = client.put(f"{BASE}/{child['id']}", json={"description": "still nested"})
    assert untouched.json()["data"]["parent_id"] == parent["id"]

    response = client.put(f"{BASE}/{child['id']}", json={"parent_id": None})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["parent_id"] is None
    assert data["path"] == f"/{child_name}"


def test_create_conflicts_and_validation(client: TestClient):
    name = _unique("Dup")
    _create(client, name)

    conflict = client.post(BASE, json={"name": name})
    assert conflict.status_code == 409
    assert conflict.json()["data"]["error"] == "PATH_EXISTS"

    bad_name = client.post(BASE, json={"name": "a/b"})
    assert bad_name.status_code == 400
    assert bad_name.json()["data"]["error"] == "VALIDATION"

    missing_parent = client.post(BASE, json={"name": _unique("x"), "parent_id": 999999})
    assert missing_parent.status_code == 400
    assert missing_parent.json()["data"]["error"] == "PARENT_NOT_FOUND"

    schema_error = client.post(BASE, json={"name": "ok", "sort_order": -1})
    assert schema_error.status_code == 422
    assert schema_error.json()["code"] == 422


def test_move_and_batch_move(client: TestClient):
    docs = _create(client, _unique("Docs"))
    guides = _create(client, "Guides", docs["id"])
    setup = _create(client, "Setup", guides["id"])
    target = _create(client, _unique("Target"))

    moved = client.post(f"{BASE}/move", json={"source_id": guides["id"], "target_parent_id": target["id"]})
    assert moved.status_code == 200
    data = moved.json()["data"]
    assert data["moved_directory"]["path"] == f"{target['path']}/Guides"
    assert data["affected_paths"] == [
        {"id": setup["id"], "old_path": f"{docs['path']}/Guides/Setup", "new_path": f"{target['path']}/Guides/Setup"}
    ]

    circular = client.post(f"{BASE}/move", json={"source_id": target["id"], "target_parent_id": setup["id"]})
    assert circular.status_code == 400
    assert circular.json()["data"]["error"] == "CIRCULAR_REFERENCE"

    missing = client.post(f"{BASE}/move", json={"source_id": 999999})
    assert missing.status_code == 404
    assert missing.json()["data"]["error"] == "SOURCE_NOT_FOUND"

    batch = client.post(
        f"{BASE}/batch-move",
        json={
            "moves": [
                {"source_id": setup["id"], "target_parent_id": docs["id"]},
                {"source_id": 999999},
            ]
        },
    )
    assert batch.status_code == 200
    result = batch.json()["data"]
    assert len(result["successful_moves"]) == 1
    assert result["successful_moves"][0]["moved_directory"]["path"] == f"{docs['path']}/Setup"
    assert result["failed_moves"][0]["error"] == "SOURCE_NOT_FOUND"


def test_reorder(client: TestClient):
    parent = _create(client, _unique("Parent"))
    ids = [_create(client, name, parent["id"])["id"] for name in ("one", "two", "three")]
    new_order = [ids[1], ids[0], ids[2]]

    response = client.post(f"{BASE}/reorder", json={"parent_id": parent["id"], "ordered_ids": new_order})
    assert response.status_code == 200

    listed = client.get(BASE, params={"parent_id": parent["id"]}).json()["data"]
    assert [item["id"] for item in listed["directories"]] == new_order

    duplicate = client.post(f"{BASE}/reorder", json={"parent_id": parent["id"], "ordered_ids": [ids[0], ids[0]]})
    assert duplicate.status_code == 422

    wrong_parent = client.post(f"{BASE}/reorder", json={"ordered_ids": [ids[0]]})
    assert wrong_parent.status_code == 400
    assert wrong_parent.json()["data"]["error"] == "INVALID_DIRECTORY_PARENT"


def test_list_tree_stats_and_path_info(client: TestClient):
    root = _create(client, _unique("Tree"))
    child = _create(client, "Child", root["id"])
    leaf = _create(client, "Leaf", child["id"])

    listed = client.get(BASE, params={"path": root["path"], "include_children": True, "include_documents": True})
    assert listed.status_code == 200
    tree = listed.json()["data"]["directories"]
    assert [node["id"] for node in tree] == [root["id"]]
    assert tree[0]["children"][0]["children"][0]["id"] == leaf["id"]
    assert tree[0]["total_document_count"] == 0

    paged = client.get(BASE, params={"name": root["name"], "limit": 1, "offset": 0, "sort_by": "name", "sort_order": "DESC"})
    assert paged.status_code == 200
    assert paged.json()["data"]["total"] == 1

    invalid = client.get(BASE, params={"sort_by": "path"})
    assert invalid.status_code == 400
    assert invalid.json()["data"]["error"] == "VALIDATION"

    conflicting = client.get(BASE, params={"root_only": True, "parent_id": root["id"]})
    assert conflicting.status_code == 400
    assert conflicting.json()["data"]["error"] == "VALIDATION"

    full_tree = client.get(f"{BASE}/tree")
    assert full_tree.status_code == 200
    assert any(node["id"] == root["id"] for node in full_tree.json()["data"])

    stats = client.get(f"{BASE}/stats").json()["data"]
    assert stats["total_directories"] >= 3
    assert stats["max_depth"] >= 3

    info = client.get(f"{BASE}/{leaf['id']}/path-info").json()["data"]
    assert [crumb["path"] for crumb in info["breadcrumb"]] == ["/", root["path"], child["path"], leaf["path"]]
    assert [item["id"] for item in info["ancestors"]] == [root["id"], child["id"]]


def test_copy_structure(client: TestClient):
    source = _create(client, _unique("Source"))
    _create(client, "Inner", source["id"])

    response = client.post(f"{BASE}/{source['id']}/copy", json={})
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["copied_directory"]["path"] == f"{source['path']}_副本"
    assert [item["path"] for item in data["copied_children"]] == [f"{source['path']}_副本/Inner"]

    again = client.post(f"{BASE}/{source['id']}/copy", json={})
    assert again.status_code == 409
