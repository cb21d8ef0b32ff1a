# portfolio/tests/test_api_users.py
from portfolio.tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, login_as

MEMBER = {
    "name": "Huda",
    "email": "Huda@Example.com",
    "password": "member-pass",
    "role": "user",
    "jobTitle": "Engineer",
}


def add_member(client, **overrides):
    res = client.post("/api/team", json={**MEMBER, **overrides})
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ======================================================
# 🔐 Auth
# ======================================================

def test_login_logout_session(client, admin_user):
    assert client.get("/api/auth/session").get_json() == {"user": None}

    res = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong-pass"})
    assert res.status_code == 401
    assert client.post("/api/auth/login", json={"email": ADMIN_EMAIL}).status_code == 400

    res = client.post("/api/auth/login", json={"email": ADMIN_EMAIL.upper(), "password": ADMIN_PASSWORD})
    assert res.status_code == 200
    body = res.get_json()
    assert body["role"] == "ADMIN"
    assert "passwordHash" not in body

    session_user = client.get("/api/auth/session").get_json()["user"]
    assert session_user["id"] == admin_user.id

    client.post("/api/auth/logout")
    assert client.get("/api/auth/session").get_json() == {"user": None}


# ======================================================
# 👥 Team
# ======================================================

def test_team_list_is_public_and_includes_projects(client, logged_in_client):
    member = add_member(logged_in_client)
    logged_in_client.post("/api/projects", json={
        "projectTitle": "Lab fit-out",
        "drivers": "Safety",
        "type": "Planned",
        "opdFocal": "Huda",
        "department": "Labs",
        "percentage": 40,
    })
    logged_in_client.post("/api/auth/logout")

    team = client.get("/api/team").get_json()
    huda = next(m for m in team if m["id"] == member["id"])
    assert huda["email"] == "huda@example.com"
    assert huda["role"] == "USER"
    assert huda["jobTitle"] == "Engineer"
    assert huda["projectCount"] == 1
    assert huda["projects"] == [{
        "id": huda["projects"][0]["id"],
        "title": "Lab fit-out",
        "status": "Possible",
        "percentage": 40,
    }]


def test_team_mutations_require_admin(client, logged_in_client):
    member = add_member(logged_in_client)
    logged_in_client.post("/api/auth/logout")

    assert client.post("/api/team", json=MEMBER).status_code == 401

    login_as(client, "huda@example.com", "member-pass")
    assert client.post("/api/team", json={**MEMBER, "email": "x@example.com"}).status_code == 403
    assert client.put("/api/team", json={"id": member["id"], "name": "Hacked"}).status_code == 403
    res = client.delete(f"/api/team?id={member['id']}")
    assert res.status_code == 403
    assert res.get_json() == {"error": "Admin role required"}


def test_team_create_validation(logged_in_client):
    add_member(logged_in_client)
    assert logged_in_client.post("/api/team", json={**MEMBER, "email": "huda@example.com"}).status_code == 409
    assert logged_in_client.post("/api/team", json={"name": "No Email"}).status_code == 400
    assert logged_in_client.post("/api/team", json={**MEMBER, "email": "not-an-email"}).status_code == 400
    assert logged_in_client.post("/api/team", json={**MEMBER, "email": "r@example.com", "role": "OWNER"}).status_code == 400


def test_team_rename_cascades_to_projects(logged_in_client):
    member = add_member(logged_in_client)
    for title in ("A", "B"):
        logged_in_client.post("/api/projects", json={
            "projectTitle": title,
            "drivers": "Growth",
            "type": "Planned",
            "opdFocal": "Huda",
            "department": "Labs",
        })

    res = logged_in_client.put("/api/team", json={"id": member["id"], "name": "Huda Al-Said", "password": ""})
    assert res.status_code == 200
    body = res.get_json()
    assert body["name"] == "Huda Al-Said"
    assert body["projectsUpdated"] == 2
    assert body["projectsFailed"] == 0

    focals = {p["opdFocal"] for p in logged_in_client.get("/api/projects").get_json()}
    assert focals == {"Huda Al-Said"}

    # old password still works since an empty password is ignored
    logged_in_client.post("/api/auth/logout")
    login_as(logged_in_client, "huda@example.com", "member-pass")


def test_team_update_and_delete_errors(logged_in_client):
    assert logged_in_client.put("/api/team", json={"name": "No id"}).status_code == 400
    assert logged_in_client.put("/api/team", json={"id": "missing", "name": "X"}).status_code == 404
    assert logged_in_client.delete("/api/team").status_code == 400

    member = add_member(logged_in_client)
    assert logged_in_client.delete(f"/api/team?id={member['id']}").get_json() == {"success": True}
    assert all(m["id"] != member["id"] for m in logged_in_client.get("/api/team").get_json())


# ======================================================
# 🙍 Profile
# ======================================================

def test_profile_requires_login(client):
    assert client.get("/api/user/profile").status_code == 401
    assert client.put("/api/user/password", json={}).status_code == 401


def test_profile_read_and_update(logged_in_client, admin_user):
    profile = logged_in_client.get("/api/user/profile").get_json()
    assert profile["email"] == ADMIN_EMAIL

    res = logged_in_client.put("/api/user/profile", json={"name": "Only Name"})
    assert res.status_code == 400

    res = logged_in_client.patch("/api/user/profile", json={"phone": "+968 9999", "bio": "Hi", "role": "USER"})
    assert res.status_code == 200
    assert res.get_json()["phone"] == "+968 9999"
    assert res.get_json()["role"] == "ADMIN"

    res = logged_in_client.put("/api/user/profile", json={"name": "Renamed Admin", "email": ADMIN_EMAIL})
    assert res.status_code == 200
    session_user = logged_in_client.get("/api/auth/session").get_json()["user"]
    assert session_user["name"] == "Renamed Admin"


def test_password_change(logged_in_client):
    res = logged_in_client.put("/api/user/password", json={"currentPassword": "wrong!", "newPassword": "newsecret"})
    assert res.status_code == 400
    assert res.get_json()["error"] == "Current password is incorrect"

    res = logged_in_client.put("/api/user/password", json={"currentPassword": ADMIN_PASSWORD, "newPassword": "123"})
    assert res.status_code == 400

    res = logged_in_client.put("/api/user/password", json={"currentPassword": ADMIN_PASSWORD, "newPassword": "newsecret"})
    assert res.status_code == 200

    logged_in_client.post("/api/auth/logout")
    res = logged_in_client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 401
    login_as(logged_in_client, ADMIN_EMAIL, "newsecret")


def test_self_rename_refreshes_session_name(logged_in_client, admin_user):
    res = logged_in_client.put("/api/team", json={"id": admin_user.id, "name": "Renamed Admin"})
    assert res.status_code == 200

    session_user = logged_in_client.get("/api/auth/session").get_json()["user"]
    assert session_user["name"] == "Renamed Admin"

    project = logged_in_client.post("/api/projects", json={
        "projectTitle": "Renamed author",
        "drivers": "Growth",
        "type": "Planned",
        "opdFocal": "Someone",
        "department": "Operations",
    }).get_json()
    log = logged_in_client.get(f"/api/projects/{project['id']}/logs").get_json()[0]
    assert log["createdByName"] == "Renamed Admin"
