"""
Posts, reactions, comments, reshares, feeds and post lifetime.
"""
from datetime import timedelta

from conftest import auth

from model.base import utcnow
from model.community import Group, GroupMember
from model.factcheck import FactCheckResult
from model.notification import Notification
from model.post import Post, PostReaction, PostComment
from src import retention


def _post(client, user, text="hello world"):
    r = client.post("/api/posts", headers=auth(user), data={"text": text})
    assert r.status_code == 201, r.text
    return r.json()


def _react_all(db, post_id, users, type_="like"):
    for u in users:
        db.add(PostReaction(post_id=post_id, user_id=u.id, type=type_, created_at=utcnow()))
    db.commit()


# ===================================================================
# Creating posts
# ===================================================================

class TestCreatePost:
    def test_user_post_expires_in_a_day(self, client, alice):
        body = _post(client, alice)
        assert body["type"] == "original"
        assert body["scope"] == "global"
        assert body["retention"] == "normal"
        assert body["isProtected"] is False
        assert body["expiresAt"] is not None
        assert body["reactionCounts"]["like"] == 0
        assert body["myReaction"] is None

    def test_admin_post_is_permanent(self, client, admin):
        body = _post(client, admin, "Welcome to Mask")
        assert body["retention"] == "permanent"
        assert body["isProtected"] is True
        assert body["expiresAt"] is None

    def test_empty_post_rejected(self, client, alice):
        r = client.post("/api/posts", headers=auth(alice), data={"text": "   "})
        assert r.status_code == 400
        assert r.json()["message"] == "Post needs text or an image"

    def test_too_long_post_rejected(self, client, alice):
        r = client.post("/api/posts", headers=auth(alice), data={"text": "x" * 2001})
        assert r.status_code == 400

    def test_bad_scope(self, client, alice):
        r = client.post("/api/posts", headers=auth(alice), data={"text": "hi", "scope": "friends"})
        assert r.status_code == 400

    def test_group_post_requires_membership(self, client, db, alice, bob):
        g = Group(name="Hikers", privacy="public", created_by=alice.id)
        db.add(g)
        db.commit()
        db.add(GroupMember(group_id=g.id, user_id=alice.id, is_admin=True))
        db.commit()
        r = client.post("/api/posts", headers=auth(bob), data={"text": "hi", "scope": "group", "group": str(g.id)})
        assert r.status_code == 403
        r = client.post("/api/posts", headers=auth(alice), data={"text": "hi", "scope": "group", "group": str(g.id)})
        assert r.status_code == 201
        assert r.json()["groupId"] == g.id


# ===================================================================
# Reactions
# ===================================================================

class TestReactions:
    def test_toggle_add_switch_remove(self, client, alice, bob):
        post = _post(client, alice)
        url = f"/api/posts/{post['id']}/react"

        r = client.post(url, headers=auth(bob), json={"type": "like"})
        assert r.status_code == 200
        assert r.json()["reactionCounts"]["like"] == 1
        assert r.json()["post"]["myReaction"] == "like"

        r = client.post(url, headers=auth(bob), json={"type": "wow"})
        counts = r.json()["reactionCounts"]
        assert counts["like"] == 0 and counts["wow"] == 1

        r = client.post(url, headers=auth(bob), json={"type": "wow"})
        assert r.json()["reactionCounts"]["wow"] == 0
        assert r.json()["post"]["myReaction"] is None

    def test_non_member_cannot_react_to_group_post(self, client, db, alice, carol):
        g = Group(name="Quiet Room", privacy="private", created_by=alice.id)
        db.add(g)
        db.commit()
        db.add(GroupMember(group_id=g.id, user_id=alice.id, is_admin=True))
        db.commit()
        post = client.post("/api/posts", headers=auth(alice),
                           data={"text": "top secret words", "scope": "group", "group": str(g.id)}).json()

        r = client.post(f"/api/posts/{post['id']}/react", headers=auth(carol), json={"type": "like"})
        assert r.status_code == 403
        assert "top secret words" not in r.text
        assert db.query(PostReaction).filter(PostReaction.post_id == post["id"]).count() == 0

    def test_unknown_reaction_type(self, client, alice):
        post = _post(client, alice)
        r = client.post(f"/api/posts/{post['id']}/react", headers=auth(alice), json={"type": "meh"})
        assert r.status_code == 400
        assert r.json()["code"] == "validation_error"

    def test_reaction_notifies_author_but_not_self(self, client, db, alice, bob):
        post = _post(client, alice)
        client.post(f"/api/posts/{post['id']}/react", headers=auth(alice), json={"type": "love"})
        client.post(f"/api/posts/{post['id']}/react", headers=auth(bob), json={"type": "love"})
        rows = db.query(Notification).filter(Notification.user_id == alice.id).all()
        assert [n.type for n in rows] == ["reaction"]
        assert rows[0].actor_id == bob.id
        assert rows[0].reaction_type == "love"


# ===================================================================
# Comments and reshares
# ===================================================================

class TestCommentsAndShares:
    def test_comment_returns_post_with_comments(self, client, alice, bob):
        post = _post(client, alice)
        r = client.post(f"/api/posts/{post['id']}/comment", headers=auth(bob), json={"text": "  nice  "})
        assert r.status_code == 200
        body = r.json()
        assert body["comment"]["text"] == "nice"
        assert body["post"]["commentCount"] == 1
        assert body["post"]["comments"][0]["author"]["displayName"] == "bob"

    def test_blank_comment_rejected(self, client, alice):
        post = _post(client, alice)
        r = client.post(f"/api/posts/{post['id']}/comment", headers=auth(alice), json={"text": "   "})
        assert r.status_code == 400

    def test_reshare_wraps_original(self, client, alice, bob):
        post = _post(client, alice, "original words")
        r = client.post(f"/api/posts/{post['id']}/share", headers=auth(bob))
        assert r.status_code == 201
        wrapper = r.json()
        assert wrapper["type"] == "reshare"
        assert wrapper["text"] == ""
        assert wrapper["image"] is None
        assert wrapper["originalPost"]["id"] == post["id"]
        assert wrapper["originalPost"]["text"] == "original words"

        again = client.get(f"/api/posts/{post['id']}", headers=auth(alice)).json()
        assert again["shareCount"] == 1

    def test_resharing_a_reshare_points_at_the_root(self, client, alice, bob, carol):
        post = _post(client, alice)
        wrapper = client.post(f"/api/posts/{post['id']}/share", headers=auth(bob)).json()
        second = client.post(f"/api/posts/{wrapper['id']}/share", headers=auth(carol)).json()
        assert second["originalPost"]["id"] == post["id"]

    def test_private_group_reshare_stays_in_group(self, client, db, alice, bob):
        g = Group(name="Secret Club", privacy="private", created_by=alice.id)
        db.add(g)
        db.commit()
        db.add_all([
            GroupMember(group_id=g.id, user_id=alice.id, is_admin=True),
            GroupMember(group_id=g.id, user_id=bob.id, is_admin=False),
        ])
        db.commit()
        post = client.post("/api/posts", headers=auth(alice),
                           data={"text": "members only", "scope": "group", "group": str(g.id)}).json()
        wrapper = client.post(f"/api/posts/{post['id']}/share", headers=auth(bob)).json()
        assert wrapper["scope"] == "group"
        assert wrapper["groupId"] == g.id

    def test_non_member_cannot_reshare_private_group_post(self, client, db, alice, carol):
        g = Group(name="Inner Circle", privacy="private", created_by=alice.id)
        db.add(g)
        db.commit()
        db.add(GroupMember(group_id=g.id, user_id=alice.id, is_admin=True))
        db.commit()
        post = client.post("/api/posts", headers=auth(alice),
                           data={"text": "members only", "scope": "group", "group": str(g.id)}).json()
        assert client.post(f"/api/posts/{post['id']}/share", headers=auth(carol)).status_code == 403

    def test_expired_original_cannot_be_reshared(self, client, db, alice, bob):
        post = _post(client, alice)
        db.get(Post, post["id"]).expires_at = utcnow() - timedelta(minutes=1)
        db.commit()
        assert client.post(f"/api/posts/{post['id']}/share", headers=auth(bob)).status_code == 404

    def test_reshare_of_deleted_original_is_gone(self, client, db, alice, bob, carol):
        post = _post(client, alice)
        wrapper = client.post(f"/api/posts/{post['id']}/share", headers=auth(bob)).json()
        assert client.delete(f"/api/posts/{post['id']}", headers=auth(alice)).json() == {"ok": True}
        r = client.post(f"/api/posts/{wrapper['id']}/share", headers=auth(carol))
        assert r.status_code == 404
        assert r.json()["message"] == "Original post not found"
        assert db.query(Post).filter(Post.original_post_id == wrapper["id"]).count() == 0

    def test_deleted_original_author_renders_anonymously(self, client, alice, bob):
        post = _post(client, alice, "words outlive accounts")
        wrapper = client.post(f"/api/posts/{post['id']}/share", headers=auth(bob)).json()
        client.delete("/api/users/me", headers=auth(alice))

        body = client.get(f"/api/posts/{wrapper['id']}", headers=auth(bob)).json()
        embedded = body["originalPost"]
        assert embedded["text"] == "words outlive accounts"
        assert embedded["author"]["displayName"] == "Deleted user"
        assert embedded["author"]["avatarUrl"] is None
        assert embedded["author"]["profileLink"] is None
        assert body["author"]["displayName"] == "bob"


# ===================================================================
# Visibility and deletion
# ===================================================================

class TestVisibility:
    def test_expired_post_is_not_found(self, client, db, alice):
        post = _post(client, alice)
        row = db.get(Post, post["id"])
        row.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()
        assert client.get(f"/api/posts/{post['id']}", headers=auth(alice)).status_code == 404

    def test_group_post_hidden_from_non_members(self, client, db, alice, bob):
        g = Group(name="Closed Circle", privacy="private", created_by=alice.id)
        db.add(g)
        db.commit()
        db.add(GroupMember(group_id=g.id, user_id=alice.id, is_admin=True))
        db.commit()
        post = client.post("/api/posts", headers=auth(alice),
                           data={"text": "inside", "scope": "group", "group": str(g.id)}).json()
        r = client.get(f"/api/posts/{post['id']}", headers=auth(bob))
        assert r.status_code == 403
        assert r.json()["message"] == "Members only"
        feed_ids = [p["id"] for p in client.get("/api/posts", headers=auth(bob)).json()]
        assert post["id"] not in feed_ids

    def test_only_author_or_admin_deletes(self, client, alice, bob, admin):
        post = _post(client, alice)
        assert client.delete(f"/api/posts/{post['id']}", headers=auth(bob)).status_code == 403
        assert client.delete(f"/api/posts/{post['id']}", headers=auth(admin)).status_code == 200
        assert client.get(f"/api/posts/{post['id']}", headers=auth(alice)).status_code == 404


# ===================================================================
# Feeds
# ===================================================================

class TestFeeds:
    def test_for_you_is_newest_first(self, client, alice):
        first = _post(client, alice, "first")
        second = _post(client, alice, "second")
        ids = [p["id"] for p in client.get("/api/posts", headers=auth(alice)).json()]
        assert ids.index(second["id"]) < ids.index(first["id"])

    def test_limit_is_clamped(self, client, alice):
        for i in range(3):
            _post(client, alice, f"post {i}")
        assert len(client.get("/api/posts?limit=2", headers=auth(alice)).json()) == 2
        assert len(client.get("/api/posts?limit=0", headers=auth(alice)).json()) == 1

    def test_trending_needs_two_reactions(self, client, db, alice, bob, carol):
        quiet = _post(client, alice, "quiet")
        busy = _post(client, alice, "busy")
        _react_all(db, busy["id"], [bob, carol])
        _react_all(db, quiet["id"], [bob])
        ids = [p["id"] for p in client.get("/api/posts/trending", headers=auth(alice)).json()]
        assert ids == [busy["id"]]

    def test_comments_outweigh_reactions(self, client, db, alice, bob, carol, make_user):
        dave = make_user("dave")
        liked = _post(client, alice, "liked")
        discussed = _post(client, alice, "discussed")
        _react_all(db, liked["id"], [bob, carol, dave])
        _react_all(db, discussed["id"], [bob, carol])
        db.add(PostComment(post_id=discussed["id"], user_id=bob.id, text="hm", created_at=utcnow()))
        db.commit()
        ids = [p["id"] for p in client.get("/api/posts/trending", headers=auth(alice)).json()]
        assert ids == [discussed["id"], liked["id"]]

    def test_fact_checked_posts_sink(self, client, db, alice, bob, carol, make_user):
        dave = make_user("dave")
        checked = _post(client, alice, "checked")
        plain = _post(client, alice, "plain")
        _react_all(db, checked["id"], [bob, carol, dave])
        _react_all(db, plain["id"], [bob, carol])
        db.add(FactCheckResult(post_id=checked["id"], verdict="false", claim="", explanation="", model="t"))
        db.commit()
        ids = [p["id"] for p in client.get("/api/posts/trending", headers=auth(alice)).json()]
        assert ids == [plain["id"], checked["id"]]


# ===================================================================
# Retention
# ===================================================================

class TestRetention:
    def test_five_likes_extend_a_week(self, client, db, alice, make_user):
        post = _post(client, alice)
        fans = [make_user(f"fan{i}") for i in range(5)]
        _react_all(db, post["id"], fans[:4])
        r = client.post(f"/api/posts/{post['id']}/react", headers=auth(fans[4]), json={"type": "love"})
        body = r.json()["post"]
        assert body["retention"] == "extended"
        row = db.get(Post, post["id"])
        db.refresh(row)
        assert row.expires_at > utcnow() + timedelta(days=6)

    def test_eight_strong_reactions_make_permanent(self, db, alice, make_user):
        post = Post(author_id=alice.id, text="x", created_at=utcnow())
        retention.initial_lifetime(post, alice)
        db.add(post)
        db.commit()
        fans = [make_user(f"fan{i}") for i in range(8)]
        for i, u in enumerate(fans):
            db.add(PostReaction(post_id=post.id, user_id=u.id, type=("wow", "care")[i % 2], created_at=utcnow()))
        db.flush()
        assert retention.apply_reaction_retention(db, post) is True
        assert post.retention == "permanent"
        assert post.expires_at is None

    def test_sad_reactions_do_not_count(self, db, alice, make_user):
        post = Post(author_id=alice.id, text="x", created_at=utcnow())
        retention.initial_lifetime(post, alice)
        db.add(post)
        db.commit()
        for i in range(6):
            db.add(PostReaction(post_id=post.id, user_id=make_user(f"sad{i}").id, type="sad", created_at=utcnow()))
        db.flush()
        assert retention.apply_reaction_retention(db, post) is False
        assert post.retention == "normal"

    def test_tick_purges_expired_and_promotes(self, db, alice, bob, make_user):
        now = utcnow()
        stale = Post(author_id=alice.id, text="old", created_at=now - timedelta(days=2),
                     expires_at=now - timedelta(hours=1))
        talked = Post(author_id=alice.id, text="talked", created_at=now - timedelta(hours=2),
                      expires_at=now + timedelta(hours=22))
        db.add_all([stale, talked])
        db.commit()
        for i in range(3):
            db.add(PostComment(post_id=talked.id, user_id=bob.id, text=f"c{i}", created_at=now))
        db.commit()

        stats = retention.run_retention_tick(db)

        assert stats == {"permanent": 0, "extended": 1, "purged": 1}
        assert db.get(Post, stale.id) is None
        db.refresh(talked)
        assert talked.retention == "extended"
        assert talked.expires_at == talked.created_at + timedelta(days=7)

    def test_tick_protects_admin_posts(self, db, admin):
        now = utcnow()
        legacy = Post(author_id=admin.id, text="legacy", created_at=now, expires_at=now + timedelta(hours=3))
        db.add(legacy)
        db.commit()
        stats = retention.run_retention_tick(db)
        assert stats["permanent"] == 1
        db.refresh(legacy)
        assert legacy.is_protected is True
        assert legacy.expires_at is None
