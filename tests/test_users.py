"""
Profiles, follows, friend requests, bookmarks and motivation preferences.
"""
from conftest import auth

from model.notification import Notification
from model.user import Users


def _post(client, user, text="hello"):
    return client.post("/api/posts", headers=auth(user), data={"text": text}).json()


class TestProfile:
    def test_me_includes_private_fields(self, client, alice):
        body = client.get("/api/users/me", headers=auth(alice)).json()
        assert body["email"] == "alice@example.com"
        assert body["followingCount"] == 0
        assert body["friendsCount"] == 0

    def test_public_profile_hides_email(self, client, alice, bob):
        body = client.get(f"/api/users/{alice.id}", headers=auth(bob)).json()
        assert "email" not in body
        assert body["isMe"] is False
        assert body["following"] is False
        assert body["profileLink"] == f"/profile/{alice.id}"

    def test_unknown_user(self, client, alice):
        assert client.get("/api/users/9999", headers=auth(alice)).status_code == 404

    def test_deleted_author_renders_anonymously(self, client, alice, bob):
        post = _post(client, alice, "still here")
        client.delete("/api/users/me", headers=auth(alice))
        body = client.get(f"/api/posts/{post['id']}", headers=auth(bob)).json()
        assert body["author"]["displayName"] == "Deleted user"
        assert body["author"]["avatarUrl"] is None
        assert body["author"]["profileLink"] is None
        assert body["author"]["deleted"] is True

    def test_deleted_commenter_renders_anonymously(self, client, alice, bob):
        post = _post(client, alice, "comment on me")
        client.post(f"/api/posts/{post['id']}/comment", headers=auth(bob), json={"text": "gone soon"})
        client.delete("/api/users/me", headers=auth(bob))

        comment = client.get(f"/api/posts/{post['id']}", headers=auth(alice)).json()["comments"][0]
        assert comment["text"] == "gone soon"
        assert comment["author"]["displayName"] == "Deleted user"
        assert comment["author"]["profileLink"] is None

    def test_legacy_deleted_pseudonym_without_timestamp(self, client, db, alice, bob):
        post = _post(client, alice, "old account")
        row = db.get(Users, alice.id)
        row.pseudonym = f"deleted-{alice.id}"
        row.deleted_at = None
        db.commit()

        author = client.get(f"/api/posts/{post['id']}", headers=auth(bob)).json()["author"]
        assert author["displayName"] == "Deleted user"
        assert author["avatarUrl"] is None
        assert author["deleted"] is True


class TestFollow:
    def test_follow_toggles_and_counts(self, client, db, alice, bob):
        r = client.post(f"/api/users/{alice.id}/follow", headers=auth(bob))
        assert r.json() == {"following": True, "followersCount": 1}
        r = client.post(f"/api/users/{alice.id}/follow", headers=auth(bob))
        assert r.json() == {"following": False, "followersCount": 0}

    def test_cannot_follow_self(self, client, alice):
        assert client.post(f"/api/users/{alice.id}/follow", headers=auth(alice)).status_code == 400


class TestFriends:
    def test_request_then_accept(self, client, db, alice, bob):
        r = client.post(f"/api/users/{bob.id}/friend-request", headers=auth(alice))
        assert r.json()["status"] == "pending"
        request_id = r.json()["requestId"]

        incoming = client.get("/api/users/requests", headers=auth(bob)).json()["incoming"]
        assert [i["id"] for i in incoming] == [request_id]
        assert db.query(Notification).filter(Notification.user_id == bob.id,
                                             Notification.type == "friend_request").count() == 1

        assert client.post(f"/api/users/requests/{request_id}/accept", headers=auth(alice)).status_code == 403
        assert client.post(f"/api/users/requests/{request_id}/accept", headers=auth(bob)).status_code == 200

        profile = client.get(f"/api/users/{alice.id}", headers=auth(bob)).json()
        assert profile["isFriend"] is True
        assert client.get("/api/users/me", headers=auth(alice)).json()["friendsCount"] == 1

    def test_crossing_requests_become_friends(self, client, alice, bob):
        client.post(f"/api/users/{bob.id}/friend-request", headers=auth(alice))
        r = client.post(f"/api/users/{alice.id}/friend-request", headers=auth(bob))
        assert r.json()["status"] == "accepted"
        r = client.post(f"/api/users/{alice.id}/friend-request", headers=auth(bob))
        assert r.json() == {"status": "friends"}

    def test_repeat_request_is_idempotent(self, client, alice, bob):
        first = client.post(f"/api/users/{bob.id}/friend-request", headers=auth(alice)).json()
        second = client.post(f"/api/users/{bob.id}/friend-request", headers=auth(alice)).json()
        assert first == second

    def test_sender_can_cancel(self, client, alice, bob):
        rid = client.post(f"/api/users/{bob.id}/friend-request", headers=auth(alice)).json()["requestId"]
        assert client.post(f"/api/users/requests/{rid}/decline", headers=auth(alice)).status_code == 200
        assert client.post(f"/api/users/requests/{rid}/accept", headers=auth(bob)).status_code == 404

    def test_unfriend_removes_both_sides(self, client, alice, bob):
        client.post(f"/api/users/{bob.id}/friend-request", headers=auth(alice))
        client.post(f"/api/users/{alice.id}/friend-request", headers=auth(bob))
        client.post(f"/api/users/{bob.id}/unfriend", headers=auth(alice))
        assert client.get(f"/api/users/{alice.id}", headers=auth(bob)).json()["isFriend"] is False
        assert client.get("/api/users/me", headers=auth(bob)).json()["friendsCount"] == 0


class TestBookmarks:
    def test_toggle_and_list(self, client, alice, bob):
        post = _post(client, bob)
        assert client.post(f"/api/users/me/bookmarks/{post['id']}", headers=auth(alice)).json() == {"bookmarked": True}
        assert client.get("/api/users/me/bookmarks?ids=1", headers=auth(alice)).json() == {"ids": [post["id"]]}
        listed = client.get("/api/users/me/bookmarks", headers=auth(alice)).json()
        assert [p["id"] for p in listed] == [post["id"]]
        assert client.post(f"/api/users/me/bookmarks/{post['id']}", headers=auth(alice)).json() == {"bookmarked": False}
        assert client.get("/api/users/me/bookmarks", headers=auth(alice)).json() == []

    def test_missing_post(self, client, alice):
        assert client.post("/api/users/me/bookmarks/4242", headers=auth(alice)).status_code == 404

    def _private_post(self, client, owner):
        g = client.post("/api/groups", headers=auth(owner), json={"name": "Vault", "privacy": "private"}).json()
        post = client.post(f"/api/groups/{g['id']}/post", headers=auth(owner), data={"text": "top secret words"}).json()
        return g, post

    def test_non_member_cannot_bookmark_group_post(self, client, alice, carol):
        _, post = self._private_post(client, alice)
        assert client.post(f"/api/users/me/bookmarks/{post['id']}", headers=auth(carol)).status_code == 403
        assert client.get("/api/users/me/bookmarks", headers=auth(carol)).json() == []

    def test_leaving_the_group_hides_bookmarked_post(self, client, alice, bob):
        g, post = self._private_post(client, alice)
        client.post(f"/api/groups/{g['id']}/join", headers=auth(bob))
        assert client.post(f"/api/users/me/bookmarks/{post['id']}", headers=auth(bob)).json() == {"bookmarked": True}
        assert [p["text"] for p in client.get("/api/users/me/bookmarks", headers=auth(bob)).json()] == ["top secret words"]

        client.post(f"/api/groups/{g['id']}/join", headers=auth(bob))
        assert client.get("/api/users/me/bookmarks", headers=auth(bob)).json() == []


class TestMotivationPrefs:
    def test_defaults_and_allowed_lists(self, client, alice):
        body = client.get("/api/users/me/motivation-prefs", headers=auth(alice)).json()
        assert body["prefs"]["enabled"] is False
        assert "interests" in body["allowed"]

    def test_update_filters_unknown_tags(self, client, alice):
        r = client.put("/api/users/me/motivation-prefs", headers=auth(alice),
                       json={"hourLocal": 7, "interests": ["fitness", "Not-A-Tag"], "tone": {"humor": False}})
        assert r.status_code == 200
        prefs = r.json()["prefs"]
        assert prefs["hourLocal"] == 7
        assert prefs["interests"] == ["fitness"]
        assert prefs["tone"]["humor"] is False

    def test_hour_out_of_range(self, client, alice):
        r = client.put("/api/users/me/motivation-prefs", headers=auth(alice), json={"hourLocal": 30})
        assert r.status_code == 400
