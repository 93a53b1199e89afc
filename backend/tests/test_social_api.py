"""HTTP tests for the chat, post, friend and notification endpoints."""

from __future__ import annotations

from huddle.realtime import NotFoundError


def _notifications(client, headers) -> list[dict]:
    response = client.get("/api/notifications", headers=headers)
    assert response.status_code == 200
    return response.json()


def test_friend_request_lifecycle_notifies_both_sides(client, make_user, auth_headers):
    ann = make_user("ann", display_name="Ann")
    bob = make_user("bob", display_name="Bob")

    sent = client.post("/api/friends/requests", json={"addressee_id": ann.id}, headers=auth_headers(bob))
    assert sent.status_code == 201
    request_id = sent.json()["id"]

    duplicate = client.post("/api/friends/requests", json={"addressee_id": ann.id}, headers=auth_headers(bob))
    assert duplicate.status_code == 400
    to_self = client.post("/api/friends/requests", json={"addressee_id": bob.id}, headers=auth_headers(bob))
    assert to_self.status_code == 400

    incoming = client.get("/api/friends/requests", headers=auth_headers(ann)).json()["incoming"]
    assert [item["id"] for item in incoming] == [request_id]

    not_mine = client.post(f"/api/friends/requests/{request_id}/accept", headers=auth_headers(bob))
    assert not_mine.status_code == 403

    accepted = client.post(f"/api/friends/requests/{request_id}/accept", headers=auth_headers(ann))
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    [received] = _notifications(client, auth_headers(ann))
    assert received["type"] == "friend_request"
    assert received["message"] == "Bob sent you a friend request!"
    [answered] = _notifications(client, auth_headers(bob))
    assert answered["type"] == "friend_request_accepted"
    assert answered["actor"]["username"] == "ann"

    friends = client.get("/api/friends", headers=auth_headers(bob)).json()
    assert [friend["id"] for friend in friends] == [ann.id]

    removed = client.delete(f"/api/friends/{ann.id}", headers=auth_headers(bob))
    assert removed.status_code == 204
    assert client.get("/api/friends", headers=auth_headers(ann)).json() == []


def test_rejected_request_can_be_sent_again(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")

    request_id = client.post(
        "/api/friends/requests", json={"addressee_id": ann.id}, headers=auth_headers(bob)
    ).json()["id"]
    rejected = client.post(f"/api/friends/requests/{request_id}/reject", headers=auth_headers(ann))
    assert rejected.status_code == 204

    again = client.post("/api/friends/requests", json={"addressee_id": bob.id}, headers=auth_headers(ann))
    assert again.status_code == 201
    assert again.json()["requester"]["id"] == ann.id
    assert again.json()["status"] == "pending"


def test_follow_notifies_once(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")

    first = client.post(f"/api/friends/follow/{ann.id}", headers=auth_headers(bob))
    second = client.post(f"/api/friends/follow/{ann.id}", headers=auth_headers(bob))
    assert first.json() == {"user_id": ann.id, "following": True, "followers_count": 1}
    assert second.json()["followers_count"] == 1
    assert [item["type"] for item in _notifications(client, auth_headers(ann))] == ["new_follower"]

    unfollowed = client.delete(f"/api/friends/follow/{ann.id}", headers=auth_headers(bob))
    assert unfollowed.json()["following"] is False
    assert client.delete(f"/api/friends/follow/{ann.id}", headers=auth_headers(bob)).status_code == 404
    assert client.post(f"/api/friends/follow/{bob.id}", headers=auth_headers(bob)).status_code == 400


def test_notification_read_state(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")
    cyd = make_user("cyd")
    for follower in (bob, cyd):
        client.post(f"/api/friends/follow/{ann.id}", headers=auth_headers(follower))

    assert client.get("/api/notifications/unread-count", headers=auth_headers(ann)).json() == {"count": 2}
    newest, oldest = _notifications(client, auth_headers(ann))
    assert newest["actor_user_id"] == cyd.id
    assert oldest["actor_user_id"] == bob.id

    foreign = client.put(f"/api/notifications/{newest['id']}/read", headers=auth_headers(bob))
    assert foreign.status_code == 404

    marked = client.put(f"/api/notifications/{newest['id']}/read", headers=auth_headers(ann))
    assert marked.json() == {"count": 1}

    cleared = client.put("/api/notifications/read-all", headers=auth_headers(ann))
    assert cleared.json() == {"updated": 1}
    assert client.get("/api/notifications/unread-count", headers=auth_headers(ann)).json() == {"count": 0}

    page = client.get("/api/notifications?skip=1&take=1", headers=auth_headers(ann)).json()
    assert [item["id"] for item in page] == [oldest["id"]]


def test_chat_rest_flow(client, make_user, auth_headers):
    ann = make_user("ann", display_name="Ann")
    bob = make_user("bob")
    eve = make_user("eve")

    created = client.post(
        "/api/chat/conversations", json={"participant_ids": [bob.id]}, headers=auth_headers(ann)
    )
    conversation_id = created.json()["id"]
    reused = client.post(
        "/api/chat/conversations", json={"participant_ids": [ann.id]}, headers=auth_headers(bob)
    )
    assert reused.json()["id"] == conversation_id

    sent = client.post(
        f"/api/chat/conversations/{conversation_id}/messages",
        json={"content": "  hello bob  "},
        headers=auth_headers(ann),
    )
    assert sent.status_code == 201
    assert sent.json()["content"] == "hello bob"

    history = client.get(f"/api/chat/conversations/{conversation_id}/messages", headers=auth_headers(bob))
    assert [message["content"] for message in history.json()] == ["hello bob"]

    conversations = client.get("/api/chat/conversations", headers=auth_headers(bob)).json()
    assert conversations[0]["unread_count"] == 1
    assert conversations[0]["last_message"]["content"] == "hello bob"

    intruder = client.post(
        f"/api/chat/conversations/{conversation_id}/messages",
        json={"content": "let me in"},
        headers=auth_headers(eve),
    )
    assert intruder.status_code == 403
    assert client.get(f"/api/chat/conversations/{conversation_id}", headers=auth_headers(eve)).status_code == 403

    [notification] = _notifications(client, auth_headers(bob))
    assert notification["message"] == "Ann: hello bob"
    assert _notifications(client, auth_headers(ann)) == []


def test_posts_comments_and_likes(client, make_user, auth_headers):
    ann = make_user("ann", display_name="Ann")
    bob = make_user("bob", display_name="Bob")

    post = client.post(
        "/api/posts",
        json={"text_content": "look", "media_url": "https://cdn.example.com/p.jpg", "media_kind": "image"},
        headers=auth_headers(ann),
    ).json()
    assert post["type"] == "text_with_image"

    own_like = client.post(f"/api/posts/{post['id']}/like", headers=auth_headers(ann))
    assert own_like.json() == {"is_liked": True, "likes_count": 1}
    assert _notifications(client, auth_headers(ann)) == []

    liked = client.post(f"/api/posts/{post['id']}/like", headers=auth_headers(bob))
    assert liked.json() == {"is_liked": True, "likes_count": 2}
    unliked = client.post(f"/api/posts/{post['id']}/like", headers=auth_headers(bob))
    assert unliked.json() == {"is_liked": False, "likes_count": 1}

    comment = client.post(
        f"/api/posts/{post['id']}/comments", json={"content": "nice"}, headers=auth_headers(bob)
    ).json()
    reply = client.post(
        f"/api/posts/{post['id']}/comments",
        json={"content": "thanks", "parent_comment_id": comment["id"]},
        headers=auth_headers(ann),
    )
    assert reply.status_code == 201
    comment_like = client.post(f"/api/posts/comments/{comment['id']}/like", headers=auth_headers(ann))
    assert comment_like.json()["is_liked"] is True

    assert [item["type"] for item in _notifications(client, auth_headers(ann))] == [
        "post_comment",
        "post_like",
    ]
    assert [item["type"] for item in _notifications(client, auth_headers(bob))] == [
        "comment_like",
        "comment_reply",
    ]

    fetched = client.get(f"/api/posts/{post['id']}", headers=auth_headers(bob)).json()
    assert fetched["comments_count"] == 2
    assert fetched["is_liked"] is False
    assert [item["content"] for item in client.get(f"/api/posts/{post['id']}/comments", headers=auth_headers(bob)).json()] == [
        "nice",
        "thanks",
    ]

    assert client.delete(f"/api/posts/{post['id']}", headers=auth_headers(bob)).status_code == 403
    assert client.delete(f"/api/posts/{post['id']}", headers=auth_headers(ann)).status_code == 204
    assert client.get(f"/api/posts/{post['id']}", headers=auth_headers(bob)).status_code == 404
    assert client.get("/api/posts/feed", headers=auth_headers(bob)).json() == []


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/notifications").status_code == 401


def test_health_and_metrics(client):
    health = client.get("/health")
    assert health.json()["sessions"] == {"chat": 0, "notification": 0, "post": 0}

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "# TYPE realtime_active_connections gauge" in metrics.text
    assert "# TYPE notifications_created_total counter" in metrics.text


def _befriend(client, auth_headers, requester, addressee) -> None:
    request_id = client.post(
        "/api/friends/requests", json={"addressee_id": addressee.id}, headers=auth_headers(requester)
    ).json()["id"]
    accepted = client.post(f"/api/friends/requests/{request_id}/accept", headers=auth_headers(addressee))
    assert accepted.status_code == 200


def test_user_search_and_lookup(client, make_user, auth_headers):
    ann = make_user("ann", display_name="Ann")
    dan = make_user("dan")
    make_user("bob", display_name="Bobby")

    found = client.get("/api/auth/users/search", params={"query": "AN"}, headers=auth_headers(ann))
    assert [user["username"] for user in found.json()] == ["ann", "dan"]
    others = client.get("/api/friends/search", params={"query": "an"}, headers=auth_headers(ann))
    assert [user["id"] for user in others.json()] == [dan.id]
    by_display_name = client.get("/api/friends/search", params={"query": "bobb"}, headers=auth_headers(ann))
    assert [user["username"] for user in by_display_name.json()] == ["bob"]

    blank = client.get("/api/auth/users/search", params={"query": "  "}, headers=auth_headers(ann))
    assert blank.status_code == 400
    assert client.get("/api/friends/search", params={"query": ""}, headers=auth_headers(ann)).status_code == 400

    looked_up = client.get(f"/api/auth/users/{dan.id}", headers=auth_headers(ann))
    assert looked_up.json()["username"] == "dan"
    assert client.get("/api/auth/users/9999", headers=auth_headers(ann)).status_code == 404


def test_pending_and_sent_request_lists(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")

    request_id = client.post(
        "/api/friends/requests", json={"addressee_id": ann.id}, headers=auth_headers(bob)
    ).json()["id"]

    pending = client.get("/api/friends/requests/pending", headers=auth_headers(ann)).json()
    assert [item["id"] for item in pending] == [request_id]
    assert client.get("/api/friends/requests/sent", headers=auth_headers(ann)).json() == []
    sent = client.get("/api/friends/requests/sent", headers=auth_headers(bob)).json()
    assert [item["addressee"]["id"] for item in sent] == [ann.id]


def test_followers_following_and_checks(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")
    cyd = make_user("cyd")
    client.post(f"/api/friends/follow/{ann.id}", headers=auth_headers(bob))
    client.post(f"/api/friends/follow/{ann.id}", headers=auth_headers(cyd))

    followers = client.get(f"/api/friends/{ann.id}/followers", headers=auth_headers(bob)).json()
    assert followers["total_count"] == 2
    assert [user["id"] for user in followers["users"]] == [cyd.id, bob.id]
    paged = client.get(f"/api/friends/{ann.id}/followers?skip=1&take=1", headers=auth_headers(bob)).json()
    assert paged["total_count"] == 2
    assert [user["id"] for user in paged["users"]] == [bob.id]

    following = client.get(f"/api/friends/{bob.id}/following", headers=auth_headers(ann)).json()
    assert following["total_count"] == 1
    assert [user["id"] for user in following["users"]] == [ann.id]
    assert client.get("/api/friends/9999/followers", headers=auth_headers(ann)).status_code == 404

    assert client.get(f"/api/friends/following/check/{ann.id}", headers=auth_headers(bob)).json() is True
    assert client.get(f"/api/friends/following/check/{bob.id}", headers=auth_headers(ann)).json() is False


def test_mutual_friends_status_profile_and_stats(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")
    cyd = make_user("cyd", display_name="Cyd")
    _befriend(client, auth_headers, ann, cyd)
    _befriend(client, auth_headers, cyd, bob)
    client.post(f"/api/friends/follow/{cyd.id}", headers=auth_headers(ann))
    client.post("/api/posts", json={"text_content": "hello"}, headers=auth_headers(cyd))
    deleted = client.post("/api/posts", json={"text_content": "oops"}, headers=auth_headers(cyd)).json()
    client.delete(f"/api/posts/{deleted['id']}", headers=auth_headers(cyd))

    mutual = client.get(f"/api/friends/mutual/{bob.id}", headers=auth_headers(ann)).json()
    assert [user["id"] for user in mutual] == [cyd.id]
    assert client.get(f"/api/friends/check/{cyd.id}", headers=auth_headers(ann)).json() is True
    assert client.get(f"/api/friends/check/{bob.id}", headers=auth_headers(ann)).json() is False

    status = client.get(f"/api/friends/status/{cyd.id}", headers=auth_headers(ann)).json()
    assert status == {
        "are_friends": True,
        "is_following": True,
        "is_followed_by": False,
        "has_pending_request": False,
        "is_blocked": False,
        "friendship_status": "accepted",
    }
    stranger = client.get(f"/api/friends/status/{bob.id}", headers=auth_headers(ann)).json()
    assert stranger["friendship_status"] is None
    assert stranger["are_friends"] is False

    stats = client.get(f"/api/friends/stats/{cyd.id}", headers=auth_headers(bob)).json()
    assert stats == {"friends_count": 2, "followers_count": 1, "following_count": 0, "posts_count": 1}

    profile = client.get(f"/api/friends/profile/{cyd.id}", headers=auth_headers(bob)).json()
    assert profile["user"]["display_name"] == "Cyd"
    assert profile["stats"] == stats
    assert profile["relationship_status"]["are_friends"] is True
    assert profile["relationship_status"]["is_following"] is False
    assert client.get("/api/friends/profile/9999", headers=auth_headers(bob)).status_code == 404


def test_block_drops_follows_and_stops_requests(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")
    client.post(f"/api/friends/follow/{ann.id}", headers=auth_headers(bob))
    client.post(f"/api/friends/follow/{bob.id}", headers=auth_headers(ann))

    assert client.post(f"/api/friends/block/{bob.id}", headers=auth_headers(ann)).status_code == 204
    assert client.post(f"/api/friends/block/{ann.id}", headers=auth_headers(ann)).status_code == 400
    assert client.post(f"/api/friends/block/{ann.id}", headers=auth_headers(bob)).status_code == 400

    blocked = client.get("/api/friends/blocked", headers=auth_headers(ann)).json()
    assert [user["id"] for user in blocked] == [bob.id]
    assert client.get("/api/friends/blocked", headers=auth_headers(bob)).json() == []
    assert client.get(f"/api/friends/{ann.id}/followers", headers=auth_headers(ann)).json()["total_count"] == 0
    assert client.get(f"/api/friends/{ann.id}/following", headers=auth_headers(ann)).json()["total_count"] == 0

    assert client.post(f"/api/friends/follow/{ann.id}", headers=auth_headers(bob)).status_code == 400
    refused = client.post("/api/friends/requests", json={"addressee_id": ann.id}, headers=auth_headers(bob))
    assert refused.status_code == 400
    assert client.get(f"/api/friends/status/{bob.id}", headers=auth_headers(ann)).json()["is_blocked"] is True

    assert client.delete(f"/api/friends/block/{ann.id}", headers=auth_headers(bob)).status_code == 404
    assert client.delete(f"/api/friends/block/{bob.id}", headers=auth_headers(ann)).status_code == 204
    assert client.get("/api/friends/blocked", headers=auth_headers(ann)).json() == []
    again = client.post("/api/friends/requests", json={"addressee_id": ann.id}, headers=auth_headers(bob))
    assert again.status_code == 201


def test_edit_posts_and_comments(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")
    post = client.post("/api/posts", json={"text_content": "first"}, headers=auth_headers(ann)).json()
    assert post["is_edited"] is False

    assert client.put(f"/api/posts/{post['id']}", json={"text_content": "x"}, headers=auth_headers(bob)).status_code == 403
    assert client.put(f"/api/posts/{post['id']}", json={"text_content": None}, headers=auth_headers(ann)).status_code == 400
    edited = client.put(f"/api/posts/{post['id']}", json={"text_content": "second"}, headers=auth_headers(ann)).json()
    assert edited["text_content"] == "second"
    assert edited["is_edited"] is True
    assert edited["edited_at"] is not None

    comment = client.post(
        f"/api/posts/{post['id']}/comments", json={"content": "nice"}, headers=auth_headers(bob)
    ).json()
    not_mine = client.put(f"/api/posts/comments/{comment['id']}", json={"content": "mine"}, headers=auth_headers(ann))
    assert not_mine.status_code == 403
    fixed = client.put(f"/api/posts/comments/{comment['id']}", json={"content": "very nice"}, headers=auth_headers(bob)).json()
    assert fixed["content"] == "very nice"
    assert fixed["is_edited"] is True

    assert client.delete(f"/api/posts/comments/{comment['id']}", headers=auth_headers(ann)).status_code == 403
    assert client.delete(f"/api/posts/comments/{comment['id']}", headers=auth_headers(bob)).status_code == 204
    assert client.delete(f"/api/posts/comments/{comment['id']}", headers=auth_headers(bob)).status_code == 404
    assert client.get(f"/api/posts/{post['id']}", headers=auth_headers(ann)).json()["comments_count"] == 0
    assert client.get(f"/api/posts/{post['id']}/comments", headers=auth_headers(ann)).json() == []


def test_user_posts_lists_only_that_author(client, make_user, auth_headers):
    ann = make_user("ann")
    bob = make_user("bob")
    older = client.post("/api/posts", json={"text_content": "one"}, headers=auth_headers(ann)).json()
    newer = client.post("/api/posts", json={"text_content": "two"}, headers=auth_headers(ann)).json()
    client.post("/api/posts", json={"text_content": "other"}, headers=auth_headers(bob))
    client.post(f"/api/posts/{older['id']}/like", headers=auth_headers(bob))

    posts = client.get(f"/api/posts/user/{ann.id}", headers=auth_headers(bob)).json()
    assert [item["id"] for item in posts] == [newer["id"], older["id"]]
    assert [item["is_liked"] for item in posts] == [False, True]
    assert client.get("/api/posts/user/9999", headers=auth_headers(bob)).status_code == 404


def test_stored_comment_is_returned_when_follow_up_lookup_fails(
    client, make_user, auth_headers, realtime, monkeypatch
):
    ann = make_user("ann")
    bob = make_user("bob")
    post = client.post("/api/posts", json={"text_content": "look"}, headers=auth_headers(ann)).json()

    async def missing_post(post_id, viewer_id=None):
        raise NotFoundError("Post not found")

    monkeypatch.setattr(realtime.post_service, "get_post", missing_post)

    response = client.post(
        f"/api/posts/{post['id']}/comments", json={"content": "kept"}, headers=auth_headers(bob)
    )
    assert response.status_code == 201
    assert response.json()["content"] == "kept"
    assert _notifications(client, auth_headers(ann)) == []
