import pytest


@pytest.fixture
def seeded(connected, driver):
    driver.put("docs", "a/b.txt", b"hello")
    driver.put("docs", "a/c/d.txt", b"nested")
    driver.put("docs", "e.txt", b"root file", content_type="text/plain")
    return connected


def test_list_root_returns_prefix_markers_and_files(seeded):
    resp = seeded.get("/api/buckets/docs/objects")
    assert resp.status_code == 200
    body = resp.json()
    assert body[0] == {"prefix": "a/", "size": 0}
    assert body[1]["name"] == "e.txt"
    assert body[1]["size"] == 9
    assert "prefix" not in body[1]


def test_list_under_prefix(seeded):
    body = seeded.get("/api/buckets/docs/objects", params={"prefix": "a/"}).json()
    assert [e.get("name") or e.get("prefix") for e in body] == ["a/b.txt", "a/c/"]


def test_list_recursive_returns_every_key(seeded):
    body = seeded.get("/api/buckets/docs/objects", params={"recursive": "true"}).json()
    assert [e["name"] for e in body] == ["a/b.txt", "a/c/d.txt", "e.txt"]


def test_list_missing_bucket_is_not_found(connected):
    assert connected.get("/api/buckets/nope/objects").status_code == 404


def test_upload_into_prefix(seeded, driver):
    resp = seeded.post(
        "/api/buckets/docs/upload",
        files={"file": ("notes.json", b"{}", "application/octet-stream")},
        data={"prefix": "a/c"},
    )
    assert resp.status_code == 200
    assert resp.json()["objectName"] == "a/c/notes.json"
    stored = driver.objects["docs"]["a/c/notes.json"]
    assert stored.data == b"{}"
    assert stored.content_type == "application/json"


def test_upload_keeps_only_base_name(seeded, driver):
    resp = seeded.post("/api/buckets/docs/upload", files={"file": ("../../etc/passwd", b"x", "text/plain")})
    assert resp.status_code == 200
    assert resp.json()["objectName"] == "passwd"


def test_download_is_attachment_with_length(seeded):
    resp = seeded.get("/api/buckets/docs/download/a/b.txt")
    assert resp.status_code == 200
    assert resp.content == b"hello"
    assert resp.headers["content-length"] == "5"
    assert resp.headers["content-disposition"].startswith('attachment; filename="b.txt"')


def test_download_missing_key_is_not_found(seeded):
    resp = seeded.get("/api/buckets/docs/download/a/missing.txt")
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_preview_is_inline(seeded):
    resp = seeded.get("/api/preview/docs/e.txt")
    assert resp.status_code == 200
    assert resp.content == b"root file"
    assert resp.headers["content-type"].startswith("text/plain")
    assert "content-disposition" not in resp.headers


def test_stat(seeded):
    body = seeded.get("/api/buckets/docs/stat/e.txt").json()
    assert body["name"] == "e.txt"
    assert body["size"] == 9
    assert body["contentType"] == "text/plain"


def test_delete_single_object(seeded, driver):
    assert seeded.delete("/api/buckets/docs/delete/a/b.txt").status_code == 200
    assert "a/b.txt" not in driver.objects["docs"]


def test_batch_delete_reports_failures_per_key(seeded, driver):
    driver.undeletable.add("e.txt")
    resp = seeded.post("/api/buckets/docs/delete-objects", json={"keys": ["a/b.txt", "e.txt", "a/b.txt"]})
    assert resp.status_code == 200
    assert resp.json() == {"deleted": 1, "errors": {"e.txt": "Access Denied"}}
    assert "a/b.txt" not in driver.objects["docs"]
    assert "e.txt" in driver.objects["docs"]


def test_batch_delete_accepts_legacy_field(seeded, driver):
    resp = seeded.post("/api/buckets/docs/delete-objects", json={"objects": ["e.txt"]})
    assert resp.json()["deleted"] == 1


def test_presigned_url_uses_expiry(seeded):
    resp = seeded.get("/api/buckets/docs/presigned/a/b.txt", params={"expiry": 300})
    assert resp.status_code == 200
    assert resp.json()["url"] == "http://fake-s3/docs/a/b.txt?X-Amz-Expires=300"


def test_presigned_url_expiry_is_clamped(seeded):
    url = seeded.get("/api/buckets/docs/presigned/e.txt", params={"expiry": 10 ** 9}).json()["url"]
    assert url.endswith("X-Amz-Expires=604800")


def test_presigned_url_for_missing_key_is_not_found(seeded):
    assert seeded.get("/api/buckets/docs/presigned/nothing.txt").status_code == 404


def test_presigned_batch_maps_missing_keys_to_null(seeded):
    resp = seeded.post("/api/buckets/docs/presigned-batch", json={"keys": ["e.txt", "missing.png"]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["e.txt"].startswith("http://fake-s3/docs/e.txt")
    assert body["missing.png"] is None


def test_create_folder(seeded, driver):
    resp = seeded.post("/api/buckets/docs/folder", json={"folderName": "a/new"})
    assert resp.status_code == 200
    stored = driver.objects["docs"]["a/new/"]
    assert stored.data == b""
    assert stored.content_type == "application/x-directory"


def test_create_folder_requires_name(seeded):
    resp = seeded.post("/api/buckets/docs/folder", json={"folderName": " / "})
    assert resp.status_code == 400


def test_object_routes_require_connection(http):
    assert http.get("/api/buckets/docs/objects").status_code == 401
    assert http.get("/api/preview/docs/e.txt").status_code == 401
