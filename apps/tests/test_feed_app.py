"""
Tests for apps/feed_app.py — HTTP endpoints over the feed ranker.
"""

import time

from fastapi.testclient import TestClient
from tclogger import logger

from apps.feed_app import FeedApp, parse_candidates

NOW = time.time()


def _make_payload(count: int = 12) -> dict:
    posts, authors = [], []
    for i in range(count):
        user_id = f"user{i}"
        authors.append(
            {
                "user_id": user_id,
                "account_created_at": NOW - (i + 1) * 20 * 86400,
                "follower_count": i * 100,
                "verified": i == 0,
            }
        )
        posts.append(
            {
                "id": f"post{i}",
                "author_id": user_id,
                "created_at": NOW - i * 600,
                "content": f"Post number {i} about #python",
                "like_count": i,
                "media_count": i % 2,
            }
        )
    viewer = {
        "viewer_id": "me",
        "following_ids": [f"user{i}" for i in range(6)],
        "follower_ids": ["user0"],
        "interests": ["python"],
    }
    return {"posts": posts, "authors": authors, "viewer": viewer}


def _make_client() -> TestClient:
    return TestClient(FeedApp().app)


def test_parse_candidates():
    logger.note("> Test: parse_candidates keys authors by user_id")
    payload = _make_payload(3)
    posts, authors = parse_candidates(payload["posts"], payload["authors"])
    assert [post.id for post in posts] == ["post0", "post1", "post2"]
    assert set(authors) == {"user0", "user1", "user2"}
    logger.success("  PASSED")


def test_rank_endpoint():
    logger.note("> Test: POST /rank")
    client = _make_client()
    payload = {**_make_payload(), "limit": 10, "use_cache": False}
    res = client.post("/rank", json=payload)
    assert res.status_code == 200
    data = res.json()
    assert len(data["results"]) == 10
    assert data["total_candidates"] == 12
    assert data["has_more"] is True
    assert data["discovery_count"] >= 3
    first = data["results"][0]["breakdown"]
    assert {"temporal", "engagement", "audience", "content", "final_score"} <= set(first)

    res = client.post(
        "/rank", json={**payload, "cursor": data["next_cursor"]}
    )
    assert res.status_code == 200
    assert len(res.json()["results"]) == 2
    logger.success("  PASSED")


def test_rank_endpoint_cached():
    logger.note("> Test: POST /rank with cache")
    client = _make_client()
    payload = {**_make_payload(), "limit": 5}
    first = client.post("/rank", json=payload).json()
    second = client.post("/rank", json=payload).json()
    assert first == second
    stats = client.get("/cache_stats").json()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    logger.success("  PASSED")


def test_rank_endpoint_cache_keyed_by_candidates():
    logger.note("> Test: cached /rank never serves another request's candidates")
    client = _make_client()
    payload = _make_payload(3)
    posts = payload["posts"]

    for viewer in (None, payload["viewer"]):
        first = client.post("/rank", json={"posts": posts[:1], "viewer": viewer}).json()
        second = client.post("/rank", json={"posts": posts[1:], "viewer": viewer}).json()
        first_ids = [item["post"]["id"] for item in first["results"]]
        second_ids = sorted(item["post"]["id"] for item in second["results"])
        assert first_ids == ["post0"]
        assert second_ids == ["post1", "post2"]

    # same candidates again: served from cache
    before = client.get("/cache_stats").json()["hits"]
    client.post("/rank", json={"posts": posts[1:], "viewer": payload["viewer"]})
    assert client.get("/cache_stats").json()["hits"] == before + 1
    logger.success("  PASSED")


def test_explain_ranked_post_roundtrip():
    logger.note("> Test: explaining a ranked post reproduces its engagement")
    client = _make_client()
    payload = _make_payload(1)
    payload["posts"][0].update({"reply_count": 4, "reply_lengths": [80, 90, 100, 120]})
    ranked = client.post("/rank", json={**payload, "use_cache": False}).json()
    item = ranked["results"][0]
    assert item["post"]["reply_lengths"] == [80, 90, 100, 120]

    explained = client.post(
        "/explain",
        json={"post": item["post"], "author": payload["authors"][0], "viewer": payload["viewer"]},
    ).json()
    # 4 replies * 25 + depth bonus 4 * 2
    assert item["breakdown"]["engagement"] == 108.0
    assert explained["breakdown"]["engagement"] == item["breakdown"]["engagement"]
    logger.success("  PASSED")


def test_rank_endpoint_bad_requests():
    logger.note("> Test: POST /rank rejects bad cursor / filter / posts")
    client = _make_client()
    payload = _make_payload()
    assert client.post("/rank", json={**payload, "cursor": "!!"}).status_code == 400
    assert client.post("/rank", json={**payload, "filter": "hot"}).status_code == 400
    broken = {**payload, "posts": [{"content": "no id"}], "use_cache": False}
    assert client.post("/rank", json=broken).status_code == 400
    logger.success("  PASSED")


def test_explain_endpoint():
    logger.note("> Test: POST /explain")
    client = _make_client()
    payload = _make_payload(2)
    res = client.post(
        "/explain",
        json={
            "post": payload["posts"][1],
            "author": payload["authors"][1],
            "viewer": payload["viewer"],
        },
    )
    assert res.status_code == 200
    data = res.json()
    assert data["post_id"] == "post1"
    assert data["breakdown"]["relationship"] == "following"
    assert data["content"]["media"]["points"] == 15.0
    assert client.post("/explain", json={"post": {"id": "x"}}).status_code == 400
    logger.success("  PASSED")


def test_weights_endpoint():
    logger.note("> Test: GET /weights")
    client = TestClient(FeedApp(ranking_envs={"engagement": {"reply": 30}}).app)
    data = client.get("/weights").json()
    assert data["engagement"]["reply"] == 30.0
    assert data["network"]["mutual"] == 2.0
    logger.success("  PASSED")


def test_cors_toggle():
    logger.note("> Test: CORS middleware follows allow_cors")
    client = TestClient(FeedApp({"allow_cors": True}).app)
    res = client.options(
        "/rank",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert res.status_code == 200
    assert "access-control-allow-origin" in res.headers
    plain = _make_client().get("/weights", headers={"Origin": "http://example.com"})
    assert "access-control-allow-origin" not in plain.headers
    logger.success("  PASSED")


if __name__ == "__main__":
    test_parse_candidates()
    test_rank_endpoint()
    test_rank_endpoint_cached()
    test_rank_endpoint_cache_keyed_by_candidates()
    test_explain_ranked_post_roundtrip()
    test_rank_endpoint_bad_requests()
    test_explain_endpoint()
    test_weights_endpoint()
    test_cors_toggle()
    logger.success("\n✓ All feed app tests passed")
