"""
Groups and pages: creation, membership, posting rights and visibility.
"""
from conftest import auth

from model.community import Group, Page
from model.post import Post


def _group(client, user, name="Hikers", privacy="public"):
    r = client.post("/api/groups", headers=auth(user), json={"name": name, "privacy": privacy})
    assert r.status_code == 201, r.text
    return r.json()


def _page(client, user, name="Daily Bread"):
    r = client.post("/api/pages", headers=auth(user), json={"name": name, "category": "Food"})
    assert r.status_code == 201, r.text
    return r.json()


# ===================================================================
# Groups
# ===================================================================

class TestGroups:
    def test_creator_is_admin_member(self, client, alice):
        g = _group(client, alice)
        assert g["isMember"] is True
        assert g["isAdmin"] is True
        assert g["membersCount"] == 1

    def test_name_is_unique_case_insensitively(self, client, alice, bob):
        _group(client, alice)
        r = client.post("/api/groups", headers=auth(bob), json={"name": "HIKERS"})
        assert r.status_code == 409

    def test_short_name_rejected(self, client, alice):
        r = client.post("/api/groups", headers=auth(alice), json={"name": "ab"})
        assert r.status_code == 400

    def test_join_and_leave(self, client, alice, bob):
        g = _group(client, alice)
        r = client.post(f"/api/groups/{g['id']}/join", headers=auth(bob))
        assert r.json() == {"member": True, "membersCount": 2}
        r = client.post(f"/api/groups/{g['id']}/join", headers=auth(bob))
        assert r.json() == {"member": False, "membersCount": 1}

    def test_last_admin_cannot_leave(self, client, alice):
        g = _group(client, alice)
        r = client.post(f"/api/groups/{g['id']}/join", headers=auth(alice))
        assert r.status_code == 400

    def test_posts_need_membership(self, client, alice, bob):
        g = _group(client, alice)
        assert client.post(f"/api/groups/{g['id']}/post", headers=auth(bob), data={"text": "hi"}).status_code == 403
        assert client.get(f"/api/groups/{g['id']}/posts", headers=auth(bob)).status_code == 403

        client.post(f"/api/groups/{g['id']}/join", headers=auth(bob))
        r = client.post(f"/api/groups/{g['id']}/post", headers=auth(bob), data={"text": "hi all"})
        assert r.status_code == 201
        posts = client.get(f"/api/groups/{g['id']}/posts", headers=auth(alice)).json()
        assert [p["text"] for p in posts] == ["hi all"]

    def test_private_member_list(self, client, alice, bob):
        g = _group(client, alice, "Quiet Room", "private")
        assert client.get(f"/api/groups/{g['id']}/members", headers=auth(bob)).status_code == 403
        body = client.get(f"/api/groups/{g['id']}/members", headers=auth(alice)).json()
        assert body["count"] == 1
        assert body["items"][0]["isAdmin"] is True

    def test_disabled_group_is_unavailable(self, client, db, alice):
        g = _group(client, alice)
        row = db.get(Group, g["id"])
        row.disabled = True
        db.commit()
        r = client.post(f"/api/groups/{g['id']}/post", headers=auth(alice), data={"text": "hi"})
        assert r.status_code == 403
        assert r.json()["message"] == "Group unavailable"

    def test_suggestions_exclude_my_groups(self, client, alice, bob):
        mine = _group(client, alice, "Mine Only")
        other = _group(client, bob, "Bobs Place")
        ids = [g["id"] for g in client.get("/api/groups/suggestions", headers=auth(alice)).json()]
        assert other["id"] in ids
        assert mine["id"] not in ids

    def test_delete_group_removes_its_posts(self, client, db, alice, bob):
        g = _group(client, alice)
        post = client.post(f"/api/groups/{g['id']}/post", headers=auth(alice), data={"text": "bye"}).json()
        assert client.delete(f"/api/groups/{g['id']}", headers=auth(bob)).status_code == 403
        assert client.delete(f"/api/groups/{g['id']}", headers=auth(alice)).status_code == 200
        db.expire_all()
        assert db.get(Post, post["id"]) is None


# ===================================================================
# Pages
# ===================================================================

class TestPages:
    def test_creator_follows_as_admin(self, client, alice):
        p = _page(client, alice)
        assert p["isFollowing"] is True
        assert p["isAdmin"] is True
        assert p["followersCount"] == 1

    def test_markup_is_stripped_from_name(self, client, alice):
        p = _page(client, alice, "<b>Bold</b> Page")
        assert p["name"] == "Bold Page"

    def test_only_admins_post(self, client, alice, bob):
        p = _page(client, alice)
        client.post(f"/api/pages/{p['id']}/follow", headers=auth(bob))
        assert client.post(f"/api/pages/{p['id']}/post", headers=auth(bob), data={"text": "hi"}).status_code == 403
        r = client.post(f"/api/pages/{p['id']}/post", headers=auth(alice), data={"text": "news"})
        assert r.status_code == 201
        assert r.json()["page"]["name"] == "Daily Bread"

    def test_page_posts_viewable_by_non_followers(self, client, alice, bob):
        p = _page(client, alice)
        post = client.post(f"/api/pages/{p['id']}/post", headers=auth(alice), data={"text": "open"}).json()
        assert client.get(f"/api/posts/{post['id']}", headers=auth(bob)).status_code == 200
        feed_ids = [x["id"] for x in client.get("/api/posts", headers=auth(bob)).json()]
        assert post["id"] not in feed_ids
        client.post(f"/api/pages/{p['id']}/follow", headers=auth(bob))
        feed_ids = [x["id"] for x in client.get("/api/posts", headers=auth(bob)).json()]
        assert post["id"] in feed_ids

    def test_last_admin_cannot_unfollow(self, client, alice):
        p = _page(client, alice)
        assert client.post(f"/api/pages/{p['id']}/follow", headers=auth(alice)).status_code == 400

    def test_list_modes(self, client, alice, bob):
        mine = _page(client, alice, "Alice Page")
        other = _page(client, bob, "Bob Page")
        both = client.get("/api/pages", headers=auth(alice)).json()
        assert [p["id"] for p in both["mine"]] == [mine["id"]]
        assert other["id"] in [p["id"] for p in both["suggestions"]]
        assert client.get("/api/pages?mode=bogus", headers=auth(alice)).status_code == 400

    def test_deleted_page_hidden(self, client, db, alice, bob):
        p = _page(client, alice)
        row = db.get(Page, p["id"])
        row.deleted_at = row.created_at
        db.commit()
        assert client.get(f"/api/pages/{p['id']}", headers=auth(bob)).status_code == 404


# ===================================================================
# Search
# ===================================================================

class TestSearch:
    def test_search_spans_kinds(self, client, alice, bob, admin):
        _group(client, alice, "Garden Club")
        _page(client, alice, "Garden Tips")
        client.post("/api/posts", headers=auth(alice), data={"text": "my garden is blooming"})
        body = client.get("/api/search?q=garden", headers=auth(bob)).json()
        assert len(body["groups"]) == 1
        assert len(body["pages"]) == 1
        assert len(body["posts"]) == 1

    def test_admins_are_not_listed(self, client, alice, admin):
        body = client.get("/api/search?q=admin", headers=auth(alice)).json()
        assert body["users"] == []

    def test_wildcards_are_literal(self, client, alice, bob):
        body = client.get("/api/search?q=%25", headers=auth(alice)).json()
        assert body["users"] == []

    def test_reshares_excluded(self, client, alice, bob):
        post = client.post("/api/posts", headers=auth(alice), data={"text": "unique phrase"}).json()
        client.post(f"/api/posts/{post['id']}/share", headers=auth(bob))
        body = client.get("/api/search?q=unique", headers=auth(bob)).json()
        assert [p["id"] for p in body["posts"]] == [post["id"]]
