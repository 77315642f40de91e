"""The caller's own profile."""

from __future__ import annotations

import uuid


def test_get_profile(client, make_account):
    account = make_account(name="Frank")
    response = client.get("/profile", headers=account.headers)
    assert response.status_code == 200
    assert response.json() == {
        "id": account.id,
        "name": "Frank",
        "email": account.email,
        "shortBio": None,
        "about": None,
    }


def test_profile_requires_session(client):
    assert client.get("/profile").status_code == 401
    assert client.post("/profile", json={"name": "x"}).status_code == 401
    assert client.get("/me").status_code == 401


def test_unauthorized_message_is_generic(client):
    response = client.get("/me", headers={"Cookie": "scribe-auth=garbage"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_update_profile_is_visible_without_new_session(client, make_account):
    account = make_account(name="Grace")
    response = client.post(
        "/profile",
        json={"name": "Grace Hopper", "shortBio": "Compilers", "about": "Navy"},
        headers=account.headers,
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Grace Hopper"

    me = client.get("/me", headers=account.headers).json()
    assert me["name"] == "Grace Hopper"
    assert me["shortBio"] == "Compilers"
    assert me["about"] == "Navy"


def test_update_profile_keeps_omitted_fields(client, make_account):
    account = make_account(name="Heidi")
    client.post("/profile", json={"about": "Long bio"}, headers=account.headers)
    response = client.post(
        "/profile", json={"shortBio": "Short"}, headers=account.headers
    )
    body = response.json()
    assert body["name"] == "Heidi"
    assert body["about"] == "Long bio"
    assert body["shortBio"] == "Short"


def test_update_profile_with_own_id_is_allowed(client, make_account):
    account = make_account()
    response = client.post(
        "/profile", json={"id": account.id, "name": "Renamed"}, headers=account.headers
    )
    assert response.status_code == 200


def test_update_profile_of_another_account_is_forbidden(client, make_account):
    mallory = make_account(name="Mallory")
    victim = make_account(name="Victim")
    response = client.post(
        "/profile", json={"id": victim.id, "name": "Owned"}, headers=mallory.headers
    )
    assert response.status_code == 403
    assert client.get(f"/users/{victim.id}").json()["name"] == "Victim"
    assert client.get("/me", headers=mallory.headers).json()["name"] == "Mallory"


def test_update_profile_with_unknown_id_is_forbidden(client, make_account):
    account = make_account()
    response = client.post(
        "/profile", json={"id": str(uuid.uuid4()), "name": "x"}, headers=account.headers
    )
    assert response.status_code == 403


def test_update_profile_validates_fields(client, make_account):
    account = make_account()
    blank = client.post("/profile", json={"name": "  "}, headers=account.headers)
    assert blank.status_code == 400
    assert blank.json()["detail"] == "Name is required"

    too_long = client.post(
        "/profile", json={"shortBio": "x" * 161}, headers=account.headers
    )
    assert too_long.status_code == 400
