import uuid

from conftest import png_bytes


def _payload(**overrides):
    payload = {
        "type": "lost",
        "category": "electronics",
        "name": "Laptop charger",
        "description": "USB-C, 65W",
        "location": "Library",
        "landmark": "Near the printers",
        "latitude": 40.1106,
        "longitude": -88.2073,
        "date": "2024-03-10",
        "contactMethod": "email",
        "contactInfo": "owner@campus.edu",
        "imageUrls": ["https://img/a.webp"],
    }
    payload.update(overrides)
    return payload


def test_health(client):
    assert client.get("/").json() == {"status": "ok"}


def test_create_report(client):
    response = client.post("/api/reports", json=_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert uuid.UUID(body["reportId"])

    report = client.get(f"/api/reports/{body['reportId']}").json()["report"]
    assert report["id"] == body["reportId"]
    assert report["date"] == "2024-03-10"
    assert report["contactMethod"] == "email"
    assert report["contactInfo"] == "owner@campus.edu"
    assert report["images"] == [{"url": "https://img/a.webp"}]
    assert report["createdAt"].endswith("+00:00")


def test_create_report_inapp_drops_contact_info(client):
    response = client.post("/api/reports", json=_payload(contactMethod="inapp"))
    report_id = response.json()["reportId"]

    report = client.get(f"/api/reports/{report_id}").json()["report"]
    assert report["contactInfo"] is None


def test_create_report_validation_error_is_400(client):
    response = client.post("/api/reports", json=_payload(name="", contactInfo=None))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert {e["field"] for e in body["errors"]} == {"name", "contactInfo"}
    assert client.get("/api/reports").json() == {"reports": []}


def test_malformed_body_is_400(client):
    response = client.post("/api/reports", json=_payload(latitude="north-ish"))

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_list_reports_with_filters(client):
    for name, type, category in [
        ("Umbrella", "lost", "accessories"),
        ("Hoodie", "found", "clothing"),
        ("Student ID", "lost", "ids"),
    ]:
        client.post("/api/reports", json=_payload(name=name, type=type, category=category))

    names = [r["name"] for r in client.get("/api/reports").json()["reports"]]
    assert names == ["Student ID", "Hoodie", "Umbrella"]

    lost = client.get("/api/reports", params={"type": "lost"}).json()["reports"]
    assert [r["name"] for r in lost] == ["Student ID", "Umbrella"]

    ids = client.get("/api/reports", params={"type": "lost", "category": "ids"}).json()["reports"]
    assert [r["name"] for r in ids] == ["Student ID"]


def test_list_rejects_unknown_filter_values(client):
    response = client.get("/api/reports", params={"type": "stolen"})

    assert response.status_code == 400


def test_get_missing_report_is_404(client):
    response = client.get(f"/api/reports/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_search_reports(client):
    client.post("/api/reports", json=_payload(name="Blue Backpack", category="accessories", date="2024-03-14"))
    client.post("/api/reports", json=_payload(name="AirPods", type="found", location="Gym", date="2024-03-12"))
    client.post("/api/reports", json=_payload(name="Notebook", category="books", date="2024-03-13"))

    body = client.get("/api/reports/search", params={"q": "library", "sort": "a-z"}).json()
    assert [r["name"] for r in body["reports"]] == ["Blue Backpack", "Notebook"]
    assert body["count"] == 2

    body = client.get("/api/reports/search", params={"categories": ["books", "accessories"]}).json()
    assert [r["name"] for r in body["reports"]] == ["Blue Backpack", "Notebook"]

    body = client.get("/api/reports/search", params={"status": "found"}).json()
    assert [r["name"] for r in body["reports"]] == ["AirPods"]

    assert client.get("/api/reports/search", params={"q": "bicycle"}).json() == {"reports": [], "count": 0}
    assert client.get("/api/reports/search", params={"sort": "random"}).status_code == 400


def test_stats_and_map(client):
    client.post("/api/reports", json=_payload())
    client.post("/api/reports", json=_payload(type="found", latitude=None, longitude=None))

    stats = client.get("/api/reports/stats").json()
    assert stats["total"] == 2
    assert (stats["lost"], stats["found"]) == (1, 1)
    assert stats["by_category"]["electronics"] == 2

    pins = client.get("/api/reports/map").json()["pins"]
    assert len(pins) == 1
    assert pins[0]["latitude"] == 40.1106


def test_submit_multipart(client, image_store):
    response = client.post(
        "/api/reports/submit",
        data={
            "type": "found",
            "category": "electronics",
            "name": "iPhone 13",
            "contactMethod": "inapp",
            "contactInfo": "should be dropped",
        },
        files=[
            ("files", ("a.png", png_bytes(), "image/png")),
            ("files", ("b.png", png_bytes(), "image/png")),
        ],
    )

    assert response.status_code == 201
    assert image_store.uploads == ["a.png", "b.png"]

    report = client.get(f"/api/reports/{response.json()['reportId']}").json()["report"]
    assert report["contactInfo"] is None
    assert [img["url"] for img in report["images"]] == [
        "https://img.campusfinder.test/a.png",
        "https://img.campusfinder.test/b.png",
    ]


def test_submit_upload_failure_is_502(client, image_store):
    image_store.fail_on = {0}

    response = client.post(
        "/api/reports/submit",
        data={"type": "lost", "category": "ids", "name": "Student ID", "contactMethod": "inapp"},
        files=[("files", ("id.png", png_bytes(), "image/png"))],
    )

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert client.get("/api/reports").json() == {"reports": []}


def test_submit_missing_fields_uploads_nothing(client, image_store):
    response = client.post(
        "/api/reports/submit",
        data={"type": "lost", "contactMethod": "phone"},
        files=[("files", ("id.png", png_bytes(), "image/png"))],
    )

    assert response.status_code == 400
    assert {e["field"] for e in response.json()["errors"]} == {"category", "name", "contactInfo"}
    assert image_store.uploads == []


def test_submit_ignores_empty_file_part(client, image_store):
    # what a browser posts when the file input is left empty
    boundary = "campusfinder"
    fields = {"type": "lost", "category": "books", "name": "Calculus notes", "contactMethod": "inapp"}
    body = "".join(
        f'--{boundary}\r\nContent-Disposition: form-data; name="{k}"\r\n\r\n{v}\r\n' for k, v in fields.items()
    )
    body += (
        f'--{boundary}\r\nContent-Disposition: form-data; name="files"; filename=""\r\n'
        f"Content-Type: application/octet-stream\r\n\r\n\r\n--{boundary}--\r\n"
    )

    response = client.post(
        "/api/reports/submit",
        content=body.encode(),
        headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
    )

    assert response.status_code == 201
    assert image_store.uploads == []
    report = client.get(f"/api/reports/{response.json()['reportId']}").json()["report"]
    assert report["images"] == []


def test_submit_too_many_files_is_rejected_before_upload(client, image_store):
    response = client.post(
        "/api/reports/submit",
        data={"type": "found", "category": "other", "name": "Umbrella", "contactMethod": "inapp"},
        files=[("files", (f"{i}.png", png_bytes(), "image/png")) for i in range(4)],
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "images"
    assert image_store.uploads == []


def test_search_rejects_unknown_category(client):
    response = client.get("/api/reports/search", params={"categories": ["books", "bookz"]})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert any(e["field"].startswith("categories") for e in response.json()["errors"])
