"""
tests/test_blog_routes.py -- Integration tests for blogs, likes and comments.

Covers:
  - POST /create-blog validation and author card
  - GET /latest-blogs ordering, pagination, tag, search and author filters,
    drafts hidden, LIKE wildcards taken literally
  - The shared "general" rate-limit group
  - GET /blog/{id} read counter, draft visibility and the viewer's isLiked
  - POST /like/{id} toggling
  - Comment create/list/edit/delete with authorship checks and counters
"""

import pytest

CONTENT = ("Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 3).strip()


def _blog(**overrides) -> dict:
    body = {"title": "Campus life notes", "des": "A short summary", "content": CONTENT, "tags": ["Campus"]}
    body.update(overrides)
    return body


@pytest.fixture
def author(register_user):
    return register_user()


class TestCreateBlog:
    def test_create(self, api_client, author, auth_headers):
        user, token = author
        resp = api_client.post("/create-blog", json=_blog(), headers=auth_headers(token))
        assert resp.status_code == 201
        body = resp.json()
        assert body["title"] == "Campus life notes"
        assert body["tags"] == ["campus"]
        assert body["author"]["username"] == user.username
        assert body["activity"] == {"total_likes": 0, "total_comments": 0, "total_reads": 0}

    def test_validation(self, api_client, author, auth_headers):
        _, token = author
        resp = api_client.post("/create-blog", json=_blog(title="Hi", content="short"), headers=auth_headers(token))
        assert resp.status_code == 400
        assert resp.json()["details"] == [
            "Title must be at least 5 characters long",
            "Content must be at least 100 characters long",
        ]

    def test_requires_auth(self, api_client):
        assert api_client.post("/create-blog", json=_blog()).status_code == 401


class TestLatestBlogs:
    def test_listing_filters_and_pagination(self, api_client, author, auth_headers):
        _, token = author
        headers = auth_headers(token)
        marker = "zebracrossing"
        ids = []
        for i in range(3):
            resp = api_client.post(
                "/create-blog", json=_blog(title=f"{marker} post {i}", tags=[marker]), headers=headers
            )
            ids.append(resp.json()["id"])
        api_client.post("/create-blog", json=_blog(title=f"{marker} draft", tags=[marker], draft=True), headers=headers)

        page1 = api_client.get("/latest-blogs", params={"tag": marker, "limit": 2}).json()
        assert page1["totalBlogs"] == 3
        assert page1["totalPages"] == 2
        assert page1["currentPage"] == 1
        assert [b["id"] for b in page1["blogs"]] == [ids[2], ids[1]]
        assert page1["blogs"][0]["content"] is None

        page2 = api_client.get("/latest-blogs", params={"tag": marker, "limit": 2, "page": 2}).json()
        assert [b["id"] for b in page2["blogs"]] == [ids[0]]

        found = api_client.get("/latest-blogs", params={"search": "ZEBRACROSSING POST 1"}).json()
        assert [b["id"] for b in found["blogs"]] == [ids[1]]

    def test_author_filter(self, api_client, author, register_user, auth_headers):
        user, token = author
        _, other = register_user()
        mine = api_client.post("/create-blog", json=_blog(tags=["byauthor"]), headers=auth_headers(token)).json()["id"]
        api_client.post("/create-blog", json=_blog(tags=["byauthor"]), headers=auth_headers(other))

        page = api_client.get("/latest-blogs", params={"tag": "byauthor", "author": user.username}).json()
        assert [b["id"] for b in page["blogs"]] == [mine]
        assert page["totalBlogs"] == 1

        nobody = api_client.get("/latest-blogs", params={"author": "no-such-writer"}).json()
        assert nobody == {"blogs": [], "currentPage": 1, "totalPages": 0, "totalBlogs": 0}

    def test_wildcards_in_filters_match_literally(self, api_client, author, auth_headers):
        _, token = author
        headers = auth_headers(token)
        api_client.post("/create-blog", json=_blog(title="lit5x notes", tags=["zq1xcd"]), headers=headers)
        underscored = api_client.post("/create-blog", json=_blog(title="lit5_ notes"), headers=headers).json()["id"]

        found = api_client.get("/latest-blogs", params={"search": "lit5_"}).json()
        assert [b["id"] for b in found["blogs"]] == [underscored]
        assert api_client.get("/latest-blogs", params={"search": "lit5%"}).json()["totalBlogs"] == 0
        assert api_client.get("/latest-blogs", params={"tag": "zq1%cd"}).json()["totalBlogs"] == 0

    def test_general_traffic_is_throttled(self, api_client, author):
        """conftest sets GENERAL_RATE_LIMIT=40/minute, shared by every general route."""
        user, _ = author
        for _ in range(39):
            assert api_client.get("/latest-blogs").status_code == 200
        assert api_client.get(f"/profile/{user.username}").status_code == 200

        resp = api_client.get("/latest-blogs")
        assert resp.status_code == 429
        assert resp.json() == {"error": "Too many requests", "details": ["Please try again later"]}
        assert 1 <= int(resp.headers["Retry-After"]) <= 60
        assert api_client.get(f"/profile/{user.username}").status_code == 429
        assert api_client.get("/health").status_code == 200

    def test_bad_query_is_400(self, api_client):
        assert api_client.get("/latest-blogs", params={"page": 0}).status_code == 400
        assert api_client.get("/latest-blogs", params={"limit": 500}).status_code == 400


class TestReadAndLike:
    def test_read_counts(self, api_client, author, auth_headers):
        _, token = author
        blog_id = api_client.post("/create-blog", json=_blog(), headers=auth_headers(token)).json()["id"]
        api_client.get(f"/blog/{blog_id}")
        body = api_client.get(f"/blog/{blog_id}").json()
        assert body["activity"]["total_reads"] == 2
        assert body["content"] == CONTENT

    def test_unknown_blog(self, api_client):
        resp = api_client.get("/blog/999999")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Blog not found"}

    def test_draft_only_visible_to_author(self, api_client, author, register_user, auth_headers):
        _, token = author
        _, stranger = register_user()
        blog_id = api_client.post("/create-blog", json=_blog(draft=True), headers=auth_headers(token)).json()["id"]
        assert api_client.get(f"/blog/{blog_id}").status_code == 404
        assert api_client.get(f"/blog/{blog_id}", headers=auth_headers(stranger)).status_code == 404
        assert api_client.get(f"/blog/{blog_id}", headers=auth_headers(token)).status_code == 200

    def test_like_toggles(self, api_client, author, register_user, auth_headers):
        _, token = author
        _, fan = register_user()
        blog_id = api_client.post("/create-blog", json=_blog(), headers=auth_headers(token)).json()["id"]

        assert api_client.post(f"/like/{blog_id}", headers=auth_headers(fan)).json() == {"likes": 1, "isLiked": True}
        assert api_client.post(f"/like/{blog_id}", headers=auth_headers(token)).json() == {"likes": 2, "isLiked": True}
        assert api_client.post(f"/like/{blog_id}", headers=auth_headers(fan)).json() == {"likes": 1, "isLiked": False}

        assert api_client.get(f"/blog/{blog_id}", headers=auth_headers(token)).json()["isLiked"] is True
        assert api_client.get(f"/blog/{blog_id}", headers=auth_headers(fan)).json()["isLiked"] is False
        assert api_client.get(f"/blog/{blog_id}").json()["isLiked"] is False

    def test_like_requires_auth(self, api_client):
        assert api_client.post("/like/1").status_code == 401


class TestComments:
    def test_comment_lifecycle(self, api_client, author, register_user, auth_headers):
        _, token = author
        commenter, ctoken = register_user()
        blog_id = api_client.post("/create-blog", json=_blog(), headers=auth_headers(token)).json()["id"]

        created = api_client.post(
            f"/blogs/{blog_id}/comments", json={"content": "  Great read!  "}, headers=auth_headers(ctoken)
        )
        assert created.status_code == 201
        comment = created.json()
        assert comment["content"] == "Great read!"
        assert comment["author"]["username"] == commenter.username
        assert comment["edited"] is False

        listing = api_client.get(f"/blogs/{blog_id}/comments").json()
        assert [c["id"] for c in listing] == [comment["id"]]
        assert api_client.get(f"/blog/{blog_id}").json()["activity"]["total_comments"] == 1

        # The blog author is not the comment author.
        forbidden = api_client.put(
            f"/comments/{comment['id']}", json={"content": "hijack"}, headers=auth_headers(token)
        )
        assert forbidden.status_code == 403
        assert forbidden.json() == {"error": "Not authorized to update this comment"}

        edited = api_client.put(
            f"/comments/{comment['id']}", json={"content": "Great read, thanks"}, headers=auth_headers(ctoken)
        )
        assert edited.status_code == 200
        assert edited.json()["edited"] is True

        assert api_client.delete(f"/comments/{comment['id']}", headers=auth_headers(token)).status_code == 403
        deleted = api_client.delete(f"/comments/{comment['id']}", headers=auth_headers(ctoken))
        assert deleted.json() == {"message": "Comment deleted successfully"}
        assert api_client.get(f"/blogs/{blog_id}/comments").json() == []
        assert api_client.get(f"/blog/{blog_id}").json()["activity"]["total_comments"] == 0

    def test_empty_comment(self, api_client, author, auth_headers):
        _, token = author
        blog_id = api_client.post("/create-blog", json=_blog(), headers=auth_headers(token)).json()["id"]
        resp = api_client.post(f"/blogs/{blog_id}/comments", json={"content": "   "}, headers=auth_headers(token))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Comment content is required"}

    def test_comment_on_missing_blog(self, api_client, author, auth_headers):
        _, token = author
        resp = api_client.post("/blogs/999999/comments", json={"content": "hello"}, headers=auth_headers(token))
        assert resp.status_code == 404

    def test_unknown_comment(self, api_client, author, auth_headers):
        _, token = author
        resp = api_client.delete("/comments/999999", headers=auth_headers(token))
        assert resp.status_code == 404
        assert resp.json() == {"error": "Comment not found"}
