"""Home feed, search, stories and public profiles."""

from __future__ import annotations

import uuid

from scribe.config import settings


def test_feed_lists_published_posts_newest_first(client, make_account, make_post):
    author = make_account()
    make_post(author, title="Older")
    make_post(author, title="Newer")
    make_post(author, title="Hidden", isPublished=False)

    response = client.get("/posts")
    assert response.status_code == 200
    body = response.json()
    assert [post["title"] for post in body["posts"]] == ["Newer", "Older"]
    assert body["page"] == 1
    assert body["hasMore"] is False
    assert "content" not in body["posts"][0]


def test_feed_filters_by_author(client, make_account, make_post):
    alice = make_account(name="Alice")
    bob = make_account(name="Bob")
    make_post(alice, title="By Alice")
    make_post(bob, title="By Bob")

    response = client.get("/posts", params={"author": alice.id})
    assert [post["title"] for post in response.json()["posts"]] == ["By Alice"]


def test_feed_rejects_malformed_author(client):
    response = client.get("/posts", params={"author": "not-a-uuid"})
    assert response.status_code == 400


def test_feed_pagination(client, make_account, make_post, monkeypatch):
    monkeypatch.setattr(settings, "feed_page_size", 2)
    author = make_account()
    for index in range(3):
        make_post(author, title=f"Post {index}")

    first = client.get("/posts").json()
    assert len(first["posts"]) == 2
    assert first["hasMore"] is True

    second = client.get("/posts", params={"page": 2}).json()
    assert [post["title"] for post in second["posts"]] == ["Post 0"]
    assert second["hasMore"] is False


def test_feed_marks_viewer_state(client, make_account, make_post):
    author = make_account(name="Author")
    reader = make_account(name="Reader")
    liked = make_post(author, title="Liked")
    make_post(author, title="Plain")
    client.post(f"/posts/{liked['id']}/like", headers=reader.headers)

    posts = {p["title"]: p for p in client.get("/posts", headers=reader.headers).json()["posts"]}
    assert posts["Liked"]["isLiked"] is True
    assert posts["Liked"]["likeCount"] == 1
    assert posts["Plain"]["isLiked"] is False

    anonymous = client.get("/posts").json()["posts"]
    assert not any(post["isLiked"] for post in anonymous)


def test_search_is_case_insensitive_over_published_posts(client, make_account, make_post):
    author = make_account()
    make_post(author, title="Learning FastAPI")
    make_post(author, title="Other", content="<p>all about fastapi</p>")
    make_post(author, title="FastAPI draft", isPublished=False)
    make_post(author, title="Unrelated")

    response = client.get("/search", params={"q": "fastapi"})
    assert response.status_code == 200
    body = response.json()
    assert body["query"] == "fastapi"
    assert body["total"] == 2
    assert {post["title"] for post in body["posts"]} == {"Learning FastAPI", "Other"}


def test_search_treats_wildcards_literally(client, make_account, make_post):
    author = make_account()
    make_post(author, title="100% coverage")
    make_post(author, title="Plain title")
    assert client.get("/search", params={"q": "%"}).json()["total"] == 1


def test_empty_search_returns_nothing(client, make_account, make_post):
    make_post(make_account())
    body = client.get("/search", params={"q": "  "}).json()
    assert body["total"] == 0
    assert body["posts"] == []


def test_my_stories_tabs(client, make_account, make_post):
    author = make_account()
    make_post(author, title="Draft One", isPublished=False)
    make_post(author, title="Draft Two", isPublished=False)
    make_post(author, title="Live")
    make_post(make_account(name="Someone"), title="Not mine", isPublished=False)

    drafts = client.get("/me/stories", headers=author.headers).json()
    assert drafts["tab"] == "drafts"
    assert drafts["drafts"] == 2
    assert drafts["published"] == 1
    assert {post["title"] for post in drafts["posts"]} == {"Draft One", "Draft Two"}

    published = client.get(
        "/me/stories", params={"tab": "published"}, headers=author.headers
    ).json()
    assert [post["title"] for post in published["posts"]] == ["Live"]


def test_my_stories_requires_session(client):
    assert client.get("/me/stories").status_code == 401


def test_public_profile_shows_published_posts(client, make_account, make_post):
    author = make_account(name="Public")
    make_post(author, title="Visible")
    make_post(author, title="Secret", isPublished=False)
    client.post("/profile", json={"shortBio": "Writes things"}, headers=author.headers)

    response = client.get(f"/users/{author.id}")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Public"
    assert body["shortBio"] == "Writes things"
    assert "email" not in body
    assert [post["title"] for post in body["posts"]] == ["Visible"]


def test_public_profile_unknown_account(client):
    assert client.get(f"/users/{uuid.uuid4()}").status_code == 404
    assert client.get("/users/not-a-uuid").status_code == 404
