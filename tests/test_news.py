from datetime import datetime

from bson import ObjectId

from conftest import auth


def post_article(client, user, **fields):
    body = {"title": "Fair", "content": "Science fair on Friday", **fields}
    return client.post("/api/news", headers=auth(user), json=body)


def test_teacher_article_waits_for_admin_then_appears_publicly(client, make_user):
    token = client.post("/api/register", json={
        "name": "Alice", "email": "alice@x.edu", "password": "pw1", "role": "teacher",
    }).json()["token"]
    created = post_article(client, token)
    assert created.status_code == 200
    article = created.json()
    assert article["isPublished"] is False
    assert client.get("/api/news").json() == []

    admin = make_user("admin")
    resp = client.put(f"/api/news/{article['id']}", headers=auth(admin), json={"isPublished": True})
    assert resp.status_code == 200
    assert resp.json()["isPublished"] is True

    public = client.get("/api/news").json()
    assert [a["title"] for a in public] == ["Fair"]
    assert public[0]["author"]["name"] == "Alice"


def test_admin_article_is_published_immediately(client, make_user):
    admin = make_user("admin")
    article = post_article(client, admin, category="sports", tags=[" football ", ""]).json()
    assert article["isPublished"] is True
    assert article["category"] == "sports"
    assert article["tags"] == ["football"]
    assert article["author"] == admin["id"]


def test_student_cannot_create_news(client, make_user):
    resp = post_article(client, make_user("student"))
    assert resp.status_code == 403
    assert resp.json() == {"error": "Not authorized to create news"}


def test_create_requires_token(client):
    assert client.post("/api/news", json={"title": "x", "content": "y"}).status_code == 401


def test_public_listing_newest_first(client, make_user, store):
    admin = make_user("admin")
    first = post_article(client, admin, title="First").json()
    post_article(client, admin, title="Second")
    # push the first article back in time
    store["news"].update_one({"_id": ObjectId(first["id"])}, {"$set": {"publishedAt": datetime(2000, 1, 1)}})
    assert [a["title"] for a in client.get("/api/news").json()] == ["Second", "First"]


def test_update_applies_only_sent_fields(client, make_user):
    teacher = make_user("teacher")
    article = post_article(client, teacher, tags=["a"]).json()
    resp = client.put(f"/api/news/{article['id']}", headers=auth(teacher), json={"title": "Renamed"})
    updated = resp.json()
    assert updated["title"] == "Renamed"
    assert updated["content"] == article["content"]
    assert updated["tags"] == ["a"]


def test_teacher_cannot_publish_own_article(client, make_user):
    teacher = make_user("teacher")
    article = post_article(client, teacher).json()
    resp = client.put(f"/api/news/{article['id']}", headers=auth(teacher), json={"isPublished": True, "title": "New"})
    assert resp.status_code == 200
    assert resp.json()["isPublished"] is False
    assert resp.json()["title"] == "New"


def test_other_teacher_cannot_modify(client, make_user):
    owner = make_user("teacher")
    other = make_user("teacher")
    article = post_article(client, owner).json()
    assert client.put(f"/api/news/{article['id']}", headers=auth(other), json={"title": "x"}).status_code == 403
    assert client.delete(f"/api/news/{article['id']}", headers=auth(other)).status_code == 403


def test_owner_and_admin_can_delete(client, make_user, store):
    owner = make_user("teacher")
    admin = make_user("admin")
    mine = post_article(client, owner).json()
    theirs = post_article(client, owner).json()

    resp = client.delete(f"/api/news/{mine['id']}", headers=auth(owner))
    assert resp.status_code == 200
    assert resp.json() == {"message": "Article removed"}
    assert client.delete(f"/api/news/{theirs['id']}", headers=auth(admin)).status_code == 200
    assert store["news"].count_documents({}) == 0


def test_missing_article(client, make_user):
    admin = make_user("admin")
    resp = client.put("/api/news/64b000000000000000000099", headers=auth(admin), json={"title": "x"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Article not found"}
    assert client.delete("/api/news/bogus", headers=auth(admin)).status_code == 404


def test_invalid_category_rejected(client, make_user):
    resp = post_article(client, make_user("admin"), category="gossip")
    assert resp.status_code == 400


def test_update_rejects_blank_title_and_content(client, make_user):
    teacher = make_user("teacher")
    article = post_article(client, teacher).json()
    for body in ({"title": ""}, {"content": ""}):
        resp = client.put(f"/api/news/{article['id']}", headers=auth(teacher), json=body)
        assert resp.status_code == 400
    stored = client.put(f"/api/news/{article['id']}", headers=auth(teacher), json={}).json()
    assert stored["title"] == "Fair"
    assert stored["content"] == "Science fair on Friday"
