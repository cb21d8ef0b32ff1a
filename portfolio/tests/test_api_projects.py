# portfolio/tests/test_api_projects.py
import io

NEW_PROJECT = {
    "projectTitle": "Water network extension",
    "drivers": "Demand",
    "type": "Planned",
    "opdFocal": "Admin User",
    "department": "Operations",
    "budget": 1000,
    "awardAmount": 800,
    "startDate": "2024-01-15",
}


def create(client, **overrides):
    res = client.post("/api/projects", json={**NEW_PROJECT, **overrides})
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def test_mutations_require_login(client):
    assert client.post("/api/projects", json=NEW_PROJECT).status_code == 401
    assert client.put("/api/projects/any", json={"status": "Execution"}).status_code == 401
    assert client.delete("/api/projects/any").status_code == 401
    assert client.post("/api/projects/any/archive").status_code == 401
    assert client.get("/api/logs").status_code == 401
    res = client.get("/api/projects/mine")
    assert res.status_code == 401
    assert res.get_json() == {"error": "Unauthorized"}


def test_create_returns_wire_shape(logged_in_client):
    body = create(logged_in_client)

    assert body["projectTitle"] == "Water network extension"
    assert body["status"] == "Possible"
    assert body["percentage"] == 0
    assert body["savingsOMR"] == 200
    assert body["savingsPercentage"] == 20.0
    assert body["startDate"] == "2024-01-15T00:00:00.000Z"
    assert body["isArchived"] is False

    logs = logged_in_client.get(f"/api/projects/{body['id']}/logs").get_json()
    assert [log["action"] for log in logs] == ["PROJECT_CREATED"]
    assert logs[0]["createdByName"] == "Admin User"


def test_create_validation_errors(logged_in_client):
    res = logged_in_client.post("/api/projects", json={**NEW_PROJECT, "projectTitle": ""})
    assert res.status_code == 400
    assert res.get_json()["error"] == "projectTitle is required"

    res = logged_in_client.post("/api/projects", json={**NEW_PROJECT, "percentage": 101})
    assert res.status_code == 400
    assert "percentage" in res.get_json()["details"]

    res = logged_in_client.post("/api/projects", data="not json", content_type="text/plain")
    assert res.status_code == 400

    for huge in ("1e309", float("inf")):
        res = logged_in_client.post("/api/projects", json={**NEW_PROJECT, "budget": str(huge)})
        assert res.status_code == 400
        assert "budget" in res.get_json()["details"]


def test_get_and_list(client, logged_in_client):
    created = create(logged_in_client)
    create(logged_in_client, projectTitle="Second", department="Finance", status="Execution")

    assert client.get(f"/api/projects/{created['id']}").get_json()["id"] == created["id"]
    assert len(client.get("/api/projects").get_json()) == 2
    assert [p["projectTitle"] for p in client.get("/api/projects?department=Finance").get_json()] == ["Second"]
    assert [p["projectTitle"] for p in client.get("/api/projects?status=Execution").get_json()] == ["Second"]
    assert [p["projectTitle"] for p in client.get("/api/projects?search=network").get_json()] == [created["projectTitle"]]

    res = client.get("/api/projects/does-not-exist")
    assert res.status_code == 404
    assert res.get_json() == {"error": "Project not found"}


def test_status_update_writes_status_log(logged_in_client):
    created = create(logged_in_client)

    res = logged_in_client.put(
        f"/api/projects/{created['id']}",
        json={"status": "Execution", "statusChangeNote": "Contract signed"},
    )
    assert res.status_code == 200
    body = res.get_json()
    assert body["status"] == "Execution"
    assert body["statusChangeDate"] is not None
    assert body["projectTitle"] == created["projectTitle"]

    logs = logged_in_client.get(f"/api/projects/{created['id']}/logs").get_json()
    status_logs = [log for log in logs if log["action"] == "STATUS_CHANGE"]
    assert len(status_logs) == 1
    assert status_logs[0]["changes"]["status"] == {
        "from": "Possible",
        "to": "Execution",
        "fromKind": "scalar",
        "toKind": "scalar",
    }
    assert status_logs[0]["note"] == "Contract signed"

    # same request again adds nothing
    logged_in_client.put(f"/api/projects/{created['id']}", json={"status": "Execution"})
    again = logged_in_client.get(f"/api/projects/{created['id']}/logs").get_json()
    assert len(again) == len(logs)


def test_field_update_logs_dates_as_iso(logged_in_client):
    created = create(logged_in_client)
    logged_in_client.put(f"/api/projects/{created['id']}", json={"completionDate": "2024-12-31"})

    logs = logged_in_client.get(f"/api/projects/{created['id']}/logs").get_json()
    update = next(log for log in logs if log["action"] == "PROJECT_UPDATED")
    assert update["changes"]["completionDate"]["from"] is None
    assert update["changes"]["completionDate"]["to"] == "2024-12-31T00:00:00.000Z"
    assert update["changes"]["completionDate"]["toKind"] == "date"


def test_update_unknown_project_is_404(logged_in_client):
    res = logged_in_client.put("/api/projects/missing", json={"status": "Execution"})
    assert res.status_code == 404


def test_archive_and_restore(logged_in_client):
    created = create(logged_in_client)
    other = create(logged_in_client, projectTitle="Stays active")

    res = logged_in_client.post(f"/api/projects/{created['id']}/archive")
    assert res.status_code == 200
    assert res.get_json()["isArchived"] is True
    assert res.get_json()["archivedAt"] is not None

    active = logged_in_client.get("/api/projects/active").get_json()
    archived = logged_in_client.get("/api/projects/archived").get_json()
    assert [p["id"] for p in active] == [other["id"]]
    assert [p["id"] for p in archived] == [created["id"]]

    res = logged_in_client.delete(f"/api/projects/{created['id']}/archive")
    assert res.get_json()["isArchived"] is False
    assert logged_in_client.get("/api/projects/archived").get_json() == []

    logs = logged_in_client.get(f"/api/projects/{created['id']}/logs").get_json()
    archive_logs = [log for log in logs if "isArchived" in log["changes"]]
    assert len(archive_logs) == 2


def test_my_projects(logged_in_client):
    mine = create(logged_in_client)
    create(logged_in_client, opdFocal="Someone Else")
    archived = create(logged_in_client, projectTitle="Old one")
    logged_in_client.post(f"/api/projects/{archived['id']}/archive")

    res = logged_in_client.get("/api/projects/mine")
    assert [p["id"] for p in res.get_json()] == [mine["id"]]


def test_delete_project(logged_in_client):
    created = create(logged_in_client)
    assert logged_in_client.delete(f"/api/projects/{created['id']}").status_code == 204
    assert logged_in_client.get(f"/api/projects/{created['id']}").status_code == 404


def test_manual_log_and_log_deletion(logged_in_client):
    created = create(logged_in_client)
    url = f"/api/projects/{created['id']}/logs"

    res = logged_in_client.post(url, json={"action": "NOTE_ADDED", "description": "Site visit", "note": "ok"})
    assert res.status_code == 201
    log_id = res.get_json()["id"]

    assert logged_in_client.post(url, json={"action": "BOGUS", "description": "x"}).status_code == 400

    res = logged_in_client.delete(f"{url}?logId={log_id}")
    assert res.get_json()["deleted"] == 1

    res = logged_in_client.delete(url)
    assert res.get_json() == {
        "success": True,
        "deleted": 1,
        "message": f"1 logs deleted for project {created['id']}",
    }
    assert logged_in_client.get(url).get_json() == []


def test_activity_feed(logged_in_client):
    create(logged_in_client)
    create(logged_in_client, projectTitle="Another")
    feed = logged_in_client.get("/api/logs?limit=1").get_json()
    assert len(feed) == 1
    assert len(logged_in_client.get("/api/logs").get_json()) == 2


def test_bulk_import_json(logged_in_client):
    res = logged_in_client.post("/api/projects/bulk-import", json={"projects": [
        {"projectTitle": "One"},
        {"budget": 10},
        {"projectTitle": "Three"},
    ]})
    assert res.status_code == 200
    body = res.get_json()
    assert body["imported"] == 2
    assert body["failed"] == 1
    assert body["errors"][0]["index"] == 1

    assert logged_in_client.post("/api/projects/bulk-import", json={"projects": []}).status_code == 400


def test_bulk_import_csv_upload(logged_in_client):
    csv = "Project Title,Department,Budget\nUploaded A,IT,100\nUploaded B,HR,\n"
    res = logged_in_client.post(
        "/api/projects/bulk-import",
        data={"file": (io.BytesIO(csv.encode("utf-8")), "projects.csv")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 200, res.get_json()
    assert res.get_json()["imported"] == 2

    titles = sorted(p["projectTitle"] for p in logged_in_client.get("/api/projects").get_json())
    assert titles == ["Uploaded A", "Uploaded B"]


def test_department_id_update_logs_department_change(logged_in_client):
    engineering = logged_in_client.post("/api/departments", json={"name": "Engineering"}).get_json()
    created = create(logged_in_client)

    res = logged_in_client.put(f"/api/projects/{created['id']}", json={"departmentId": engineering["id"]})
    assert res.status_code == 200
    assert res.get_json()["department"] == "Engineering"

    logs = logged_in_client.get(f"/api/projects/{created['id']}/logs").get_json()
    update = next(log for log in logs if log["action"] == "PROJECT_UPDATED")
    assert update["changes"]["department"]["from"] == "Operations"
    assert update["changes"]["department"]["to"] == "Engineering"


def test_log_delete_is_scoped_to_the_project(logged_in_client):
    first = create(logged_in_client)
    second = create(logged_in_client, projectTitle="Second")
    second_log = logged_in_client.get(f"/api/projects/{second['id']}/logs").get_json()[0]

    res = logged_in_client.delete(f"/api/projects/{first['id']}/logs?logId={second_log['id']}")
    assert res.status_code == 404
    assert len(logged_in_client.get(f"/api/projects/{second['id']}/logs").get_json()) == 1


def test_clearing_award_clears_savings(logged_in_client):
    created = create(logged_in_client)
    assert created["savingsOMR"] == 200

    body = logged_in_client.put(f"/api/projects/{created['id']}", json={"awardAmount": None}).get_json()
    assert body["awardAmount"] is None
    assert body["savingsOMR"] is None
    assert body["savingsPercentage"] is None
