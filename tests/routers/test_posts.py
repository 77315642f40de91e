"""Post CRUD, ownership and visibility."""

from __future__ import annotations

from sqlalchemy import func, select

from scribe.models.reaction import Bookmark, Like


def test_create_post_requires_session(client):
    response = client.post("/posts", json={"title": "Anonymous"})
    assert response.status_code == 401


def test_create_post_requires_title(client, make_account):
    author = make_account()
    for body in ({}, {"title": ""}, {"title": "   "}):
        response = client.post("/posts", json=body, headers=author.headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Title is required"


def test_create_post_defaults(client, make_account, make_post):
    author = make_account(name="Writer")
    post = make_post(author, title="First Post")
    assert post["slug"] == "first-post"
    assert post["isPublished"] is True
    assert post["publishedAt"] is not None
    assert post["author"] == {"id": author.id, "name": "Writer"}
    assert post["isAuthor"] is True
    assert post["likeCount"] == 0
    assert post["readTime"] == "1 min read"


def test_read_time_rounds_up(client, make_account, make_post):
    author = make_account()
    post = make_post(author, content=" ".join(["word"] * 401))
    assert post["readTime"] == "3 min read"


def test_draft_has_no_published_at(client, make_account, make_post):
    author = make_account()
    post = make_post(author, isPublished=False)
    assert post["isPublished"] is False
    assert post["publishedAt"] is None


def test_update_by_non_owner_is_forbidden(client, make_account, make_post):
    owner = make_account(name="Owner")
    other = make_account(name="Other")
    post = make_post(owner)
    response = client.put(
        f"/posts/{post['id']}", json={"title": "Hijacked"}, headers=other.headers
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "You can only edit your own posts"
    assert client.get(f"/posts/{post['id']}").json()["title"] == post["title"]


def test_update_missing_post_is_not_found(client, make_account):
    author = make_account()
    response = client.put("/posts/999999", json={"title": "x"}, headers=author.headers)
    assert response.status_code == 404


def test_update_requires_session(client, make_account, make_post):
    post = make_post(make_account())
    response = client.put(f"/posts/{post['id']}", json={"title": "x"})
    assert response.status_code == 401


def test_partial_update_keeps_unset_fields(client, make_account, make_post):
    author = make_account()
    post = make_post(author, title="Keep", excerpt="Short", content="<p>Long</p>")
    response = client.put(
        f"/posts/{post['id']}", json={"excerpt": "Shorter"}, headers=author.headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Keep"
    assert body["excerpt"] == "Shorter"
    assert body["content"] == "<p>Long</p>"
    assert body["isPublished"] is True


def test_update_rejects_blank_title(client, make_account, make_post):
    author = make_account()
    post = make_post(author)
    response = client.put(
        f"/posts/{post['id']}", json={"title": " "}, headers=author.headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Title is required"


def test_published_at_is_set_once(client, make_account, make_post):
    author = make_account()
    post = make_post(author, isPublished=False)
    url = f"/posts/{post['id']}"

    first = client.put(url, json={"isPublished": True}, headers=author.headers).json()
    assert first["publishedAt"] is not None

    unpublished = client.put(
        url, json={"isPublished": False}, headers=author.headers
    ).json()
    assert unpublished["isPublished"] is False
    assert unpublished["publishedAt"] == first["publishedAt"]

    again = client.put(url, json={"isPublished": True}, headers=author.headers).json()
    assert again["publishedAt"] == first["publishedAt"]


def test_delete_by_non_owner_is_forbidden(client, make_account, make_post):
    owner = make_account(name="Owner")
    other = make_account(name="Other")
    post = make_post(owner)
    response = client.delete(f"/posts/{post['id']}", headers=other.headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "You can only delete your own posts"
    assert client.get(f"/posts/{post['id']}").status_code == 200


def test_delete_removes_post_likes_and_bookmarks(
    client, make_account, make_post, sync_engine
):
    owner = make_account(name="Owner")
    reader = make_account(name="Reader")
    post = make_post(owner)
    liked = client.post(f"/posts/{post['id']}/like", headers=reader.headers)
    assert liked.status_code == 200
    saved = client.post("/bookmarks", json={"postId": post["id"]}, headers=reader.headers)
    assert saved.json()["saved"] is True

    response = client.delete(f"/posts/{post['id']}", headers=owner.headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Post deleted"}
    assert client.get(f"/posts/{post['id']}").status_code == 404

    with sync_engine.connect() as conn:
        for model in (Like, Bookmark):
            remaining = conn.execute(
                select(func.count()).select_from(model).where(model.post_id == post["id"])
            ).scalar_one()
            assert remaining == 0


def test_delete_missing_post_is_not_found(client, make_account):
    response = client.delete("/posts/424242", headers=make_account().headers)
    assert response.status_code == 404


def test_draft_is_visible_only_to_owner(client, make_account, make_post):
    owner = make_account(name="Owner")
    other = make_account(name="Other")
    draft = make_post(owner, isPublished=False)

    assert client.get(f"/posts/{draft['id']}").status_code == 404
    assert client.get(f"/posts/{draft['id']}", headers=other.headers).status_code == 404
    own_view = client.get(f"/posts/{draft['id']}", headers=owner.headers)
    assert own_view.status_code == 200
    assert own_view.json()["isAuthor"] is True

    by_slug = f"/posts/slug/{draft['slug']}"
    assert client.get(by_slug).status_code == 404
    assert client.get(by_slug, headers=owner.headers).status_code == 200


def test_get_post_by_slug(client, make_account, make_post):
    author = make_account()
    post = make_post(author, title="Find Me", content="<p>Found</p>")
    response = client.get("/posts/slug/find-me")
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == post["id"]
    assert body["content"] == "<p>Found</p>"
    assert body["isAuthor"] is False
    assert body["isLiked"] is False


def test_edit_is_visible_on_next_read(client, make_account, make_post):
    author = make_account()
    post = make_post(author, title="Before")
    client.put(f"/posts/{post['id']}", json={"title": "After"}, headers=author.headers)
    assert client.get(f"/posts/{post['id']}").json()["title"] == "After"
