import fitz


def _upload(client, data, name="form.pdf", content_type="application/pdf"):
    return client.post("/api/documents", files={"file": (name, data, content_type)})


def test_root(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_upload_pdf(client, pdf_bytes):
    resp = _upload(client, pdf_bytes)
    assert resp.status_code == 201
    doc = resp.json()
    assert doc["original_name"] == "form.pdf"
    assert doc["mime_type"] == "application/pdf"
    assert (doc["width"], doc["height"]) == (612, 792)
    assert doc["size"] == len(pdf_bytes)

    assert client.get(f"/api/documents/{doc['id']}").json() == doc
    assert [d["id"] for d in client.get("/api/documents").json()] == [doc["id"]]


def test_upload_image(client, png_bytes):
    resp = _upload(client, png_bytes, name="scan.png", content_type="image/png")
    assert resp.status_code == 201
    assert (resp.json()["width"], resp.json()["height"]) == (40, 30)


def test_upload_rejects_type(client):
    resp = _upload(client, b"hello", name="notes.txt", content_type="text/plain")
    assert resp.status_code == 400
    assert "Invalid file type" in resp.json()["detail"]


def test_upload_without_file(client):
    resp = client.post("/api/documents", data={"other": "x"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "No file uploaded"


def test_upload_too_large(client, settings, pdf_bytes):
    settings.max_upload_bytes = 10
    resp = _upload(client, pdf_bytes)
    assert resp.status_code == 400
    assert "too large" in resp.json()["detail"]


def test_get_unknown_document(client):
    assert client.get("/api/documents/nope").status_code == 404
    assert client.get("/api/documents/nope/file").status_code == 404
    assert client.get("/api/documents/nope/text-fields").status_code == 404
    assert client.delete("/api/documents/nope").status_code == 404
    assert client.post("/api/documents/nope/export").status_code == 404


def test_serve_file(client, png_bytes):
    doc = _upload(client, png_bytes, name="scan.png", content_type="image/png").json()
    resp = client.get(f"/api/documents/{doc['id']}/file")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content == png_bytes


def test_delete_document_cascades(client, pdf_bytes):
    doc = _upload(client, pdf_bytes).json()
    for i in range(2):
        client.post("/api/text-fields", json={
            "document_id": doc["id"], "name": f"F{i}",
            "x": 10, "y": 10, "width": 100, "height": 30,
        })
    assert client.delete(f"/api/documents/{doc['id']}").status_code == 200
    assert client.get(f"/api/documents/{doc['id']}/text-fields").status_code == 404
    assert client.get("/api/documents").json() == []


def test_export(client, pdf_bytes):
    doc = _upload(client, pdf_bytes, name="contract.pdf").json()
    client.post("/api/text-fields", json={
        "document_id": doc["id"], "name": "Signature",
        "x": 100, "y": 100, "width": 150, "height": 35, "required": True,
    })
    resp = client.post(f"/api/documents/{doc['id']}/export")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="contract_fillable.pdf"' in resp.headers["content-disposition"]

    exported = fitz.open(stream=resp.content, filetype="pdf")
    widget = next(exported[0].widgets())
    assert widget.field_name == "Signature"
    assert widget.field_flags & fitz.PDF_FIELD_IS_REQUIRED


def test_export_failure_is_500(client, store):
    doc = store.create_document("broken.pdf", "application/pdf", b"%PDF-1.4 junk", 612, 792)
    resp = client.post(f"/api/documents/{doc.id}/export")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to export PDF"}
