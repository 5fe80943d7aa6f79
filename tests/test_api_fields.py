import pytest


@pytest.fixture()
def document_id(store, pdf_document):
    return pdf_document.id


def _create(client, document_id, **overrides):
    body = {"document_id": document_id, "name": "Field 1",
            "x": 100, "y": 100, "width": 150, "height": 35}
    body.update(overrides)
    return client.post("/api/text-fields", json=body)


def test_create_with_defaults(client, document_id):
    resp = _create(client, document_id)
    assert resp.status_code == 201
    field = resp.json()
    assert field["required"] is False
    assert field["font_family"] == "Arial"
    assert field["document_id"] == document_id


def test_list_in_creation_order(client, document_id):
    names = ["B", "A", "C"]
    for name in names:
        _create(client, document_id, name=name)
    resp = client.get(f"/api/documents/{document_id}/text-fields")
    assert [f["name"] for f in resp.json()] == names


def test_create_for_unknown_document(client):
    assert _create(client, "nope").status_code == 404


@pytest.mark.parametrize("bad", [
    {"width": 10}, {"height": 5}, {"x": -1}, {"font_family": "Papyrus"}, {"name": ""},
])
def test_create_schema_violations(client, document_id, bad):
    assert _create(client, document_id, **bad).status_code == 422


def test_blank_name_is_rejected_by_store(client, document_id):
    resp = _create(client, document_id, name="   ")
    assert resp.status_code == 400


def test_patch_partial_update(client, document_id):
    field = _create(client, document_id).json()
    resp = client.patch(f"/api/text-fields/{field['id']}",
                        json={"x": 220, "font_family": "Dancing Script"})
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["x"] == 220
    assert updated["font_family"] == "Dancing Script"
    assert updated["y"] == 100
    assert updated["name"] == "Field 1"


def test_patch_rejects_small_size(client, document_id):
    field = _create(client, document_id).json()
    resp = client.patch(f"/api/text-fields/{field['id']}", json={"width": 49})
    assert resp.status_code == 422
    listed = client.get(f"/api/documents/{document_id}/text-fields").json()
    assert listed[0]["width"] == 150


def test_patch_unknown_field(client):
    assert client.patch("/api/text-fields/nope", json={"x": 1}).status_code == 404


def test_delete_field(client, document_id):
    field = _create(client, document_id).json()
    assert client.delete(f"/api/text-fields/{field['id']}").status_code == 200
    assert client.get(f"/api/documents/{document_id}/text-fields").json() == []
    # Deleting again is not an error
    assert client.delete(f"/api/text-fields/{field['id']}").status_code == 200


@pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
def test_create_rejects_non_finite_geometry(client, document_id, literal):
    body = ('{"document_id": "%s", "name": "F", "x": 10, "y": 10, '
            '"width": %s, "height": 35}' % (document_id, literal))
    resp = client.post("/api/text-fields", content=body,
                       headers={"Content-Type": "application/json"})
    assert resp.status_code == 422
    assert client.get(f"/api/documents/{document_id}/text-fields").json() == []


def test_patch_rejects_non_finite_geometry(client, document_id):
    field = _create(client, document_id).json()
    resp = client.patch(f"/api/text-fields/{field['id']}", content='{"x": NaN}',
                        headers={"Content-Type": "application/json"})
    assert resp.status_code == 422
    listed = client.get(f"/api/documents/{document_id}/text-fields").json()
    assert listed[0]["x"] == 100
