"""
Admin console: role gating, operator endpoints, moderation and quotes.
"""
import random
from datetime import datetime, timedelta

import pytest

from conftest import auth, PASSWORD

from config import settings
from model.community import Group
from model.base import utcnow
from model.motivation import MotivationQuote, MotivationDelivery
from model.notification import Notification
from model.user import Users
from src.motivation import in_window, run_cycle

ADMIN_KEY = {"x-admin-key": "test-admin-key"}


# ===================================================================
# Gating
# ===================================================================

class TestGating:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/admin/users"),
        ("get", "/api/admin/groups"),
        ("get", "/api/admin/motivation/quotes"),
        ("get", "/api/admin/factchecks"),
        ("post", "/api/admin/notifications/broadcast"),
    ])
    def test_regular_users_are_forbidden(self, client, alice, method, path):
        r = getattr(client, method)(path, headers=auth(alice))
        assert r.status_code == 403

    def test_anonymous_is_unauthorized(self, client):
        assert client.get("/api/admin/users").status_code == 401

    def test_admin_key_alone_does_not_open_admin_routes(self, client):
        assert client.get("/api/admin/users", headers=ADMIN_KEY).status_code == 401

    def test_moderator_sees_reports_not_users(self, client, moderator):
        assert client.get("/api/admin/health", headers=auth(moderator)).json() == {"ok": True, "role": "moderator"}
        assert client.get("/api/admin/reports", headers=auth(moderator)).status_code == 200
        assert client.get("/api/admin/users", headers=auth(moderator)).status_code == 403


# ===================================================================
# Bootstrap / password reset
# ===================================================================

class TestBootstrap:
    def test_first_admin_needs_no_key(self, client):
        r = client.post("/api/admin/bootstrap", json={"pseudonym": "operator", "password": "rootpass1"})
        assert r.status_code == 201
        body = r.json()
        assert body["created"] is True
        assert body["admin"]["role"] == "admin"
        assert "rotated" not in body

    def test_rotation_needs_key_and_demotes(self, client, db, admin):
        r = client.post("/api/admin/bootstrap", json={"pseudonym": "operator2", "password": "rootpass1"})
        assert r.status_code == 403

        r = client.post("/api/admin/bootstrap", headers=ADMIN_KEY,
                        json={"pseudonym": "operator2", "password": "rootpass1"})
        assert r.status_code == 201
        assert r.json()["rotated"] is True
        db.expire_all()
        assert db.get(Users, admin.id).role == "user"

    def test_pseudonym_clash(self, client, alice):
        r = client.post("/api/admin/bootstrap", json={"pseudonym": "Alice", "password": "rootpass1"})
        assert r.status_code == 409


class TestResetPassword:
    def test_requires_key(self, client, alice):
        r = client.post("/api/admin/reset-password", json={"identifier": "alice", "newPassword": "fresh1234"})
        assert r.status_code == 403

    def test_reset_then_login(self, client, alice):
        r = client.post("/api/admin/reset-password", headers=ADMIN_KEY,
                        json={"identifier": "ALICE", "newPassword": "fresh1234"})
        assert r.status_code == 200
        assert r.json()["user"]["id"] == alice.id
        assert client.post("/api/auth/login", json={"identifier": "alice", "password": "fresh1234"}).status_code == 200
        assert client.post("/api/auth/login", json={"identifier": "alice", "password": PASSWORD}).status_code == 401

    def test_unknown_account(self, client):
        r = client.post("/api/admin/reset-password", headers=ADMIN_KEY,
                        json={"identifier": "ghost", "newPassword": "fresh1234"})
        assert r.status_code == 404


# ===================================================================
# Users, broadcast
# ===================================================================

class TestAdminUsers:
    def test_list_and_search(self, client, admin, alice, bob):
        body = client.get("/api/admin/users?search=ali", headers=auth(admin)).json()
        assert body["total"] == 1
        assert body["items"][0]["email"] == "alice@example.com"
        assert body["hasMore"] is False

    def test_paging_envelope(self, client, admin, alice, bob):
        body = client.get("/api/admin/users?limit=2", headers=auth(admin)).json()
        assert body["page"] == 1
        assert body["total"] == 3
        assert len(body["items"]) == 2
        assert body["hasMore"] is True

    def test_toggle_disable(self, client, admin, alice):
        r = client.post(f"/api/admin/users/{alice.id}/toggle-disable", headers=auth(admin))
        assert r.json()["disabled"] is True
        assert client.get("/api/auth/me", headers=auth(alice)).status_code == 401
        r = client.post(f"/api/admin/users/{alice.id}/toggle-disable", headers=auth(admin))
        assert r.json()["disabled"] is False

    def test_cannot_disable_self(self, client, admin):
        assert client.post(f"/api/admin/users/{admin.id}/toggle-disable", headers=auth(admin)).status_code == 400

    def test_anonymize(self, client, admin, alice):
        r = client.delete(f"/api/admin/users/{alice.id}", headers=auth(admin))
        assert r.json() == {"ok": True, "mode": "anonymize", "pseudonym": f"deleted-{alice.id}"}

    def test_broadcast_to_everyone(self, client, db, admin, alice, bob):
        r = client.post("/api/admin/notifications/broadcast", headers=auth(admin), json={"message": "Maintenance at 5"})
        assert r.json() == {"ok": True, "sent": 3}
        n = db.query(Notification).filter(Notification.user_id == alice.id).one()
        assert n.type == "admin"
        assert n.meta == {"from": admin.id}

    def test_broadcast_to_empty_list(self, client, admin, alice):
        r = client.post("/api/admin/notifications/broadcast", headers=auth(admin), json={"message": "hi", "userIds": []})
        assert r.json() == {"ok": True, "sent": 0}


# ===================================================================
# Reports queue
# ===================================================================

class TestReportsQueue:
    def _file(self, client, reporter, target):
        return client.post("/api/reports", headers=auth(reporter),
                           json={"targetType": "user", "targetId": target.id, "reason": "spam", "note": "bot"}).json()

    def test_list_resolve_and_reprocess(self, client, moderator, alice, bob):
        rid = self._file(client, alice, bob)["reportId"]
        body = client.get("/api/admin/reports?status=open", headers=auth(moderator)).json()
        assert body["total"] == 1
        item = body["items"][0]
        assert item["reporterUser"]["displayName"] == "alice"
        assert item["targetUserUser"]["displayName"] == "bob"

        r = client.post(f"/api/admin/reports/{rid}/resolve", headers=auth(moderator), json={"note": "banned"})
        assert r.json() == {"ok": True, "status": "resolved"}
        assert client.post(f"/api/admin/reports/{rid}/dismiss", headers=auth(moderator)).status_code == 400

    def test_dismiss_without_body(self, client, moderator, alice, bob):
        rid = self._file(client, alice, bob)["reportId"]
        assert client.post(f"/api/admin/reports/{rid}/dismiss", headers=auth(moderator)).json()["status"] == "dismissed"


# ===================================================================
# Groups / pages moderation
# ===================================================================

class TestCommunityModeration:
    def test_disable_enable_soft_delete(self, client, db, admin, alice):
        g = client.post("/api/groups", headers=auth(alice), json={"name": "Moderated"}).json()
        assert client.post(f"/api/admin/groups/{g['id']}/disable", headers=auth(admin)).json()["disabled"] is True
        listed = client.get("/api/admin/groups?state=disabled", headers=auth(admin)).json()
        assert [x["id"] for x in listed["items"]] == [g["id"]]
        assert client.post(f"/api/admin/groups/{g['id']}/enable", headers=auth(admin)).json()["disabled"] is False

        r = client.delete(f"/api/admin/groups/{g['id']}", headers=auth(admin))
        assert r.json()["ok"] is True
        db.expire_all()
        row = db.get(Group, g["id"])
        assert row.deleted_at is not None and row.disabled is True
        assert client.get(f"/api/groups/{g['id']}", headers=auth(alice)).status_code == 404

    def test_pages_share_the_same_handlers(self, client, admin, alice):
        p = client.post("/api/pages", headers=auth(alice), json={"name": "Moderated Page"}).json()
        assert client.post(f"/api/admin/pages/{p['id']}/disable", headers=auth(admin)).status_code == 200
        assert client.post("/api/admin/pages/999/disable", headers=auth(admin)).status_code == 404


# ===================================================================
# Motivation quotes
# ===================================================================

class TestQuotes:
    def _quote(self, client, admin, **kw):
        body = {"text": "Keep going.", "tags": "fitness, universal", "tone": "inspiration"}
        body.update(kw)
        r = client.post("/api/admin/motivation/quotes", headers=auth(admin), json=body)
        assert r.status_code == 201, r.text
        return r.json()

    def test_create_normalizes_tags(self, client, admin):
        q = self._quote(client, admin, tags="Fitness, fitness ,Universal")
        assert q["tags"] == ["fitness", "universal"]
        assert q["lang"] == "en"

    def test_filter_by_tag_and_tone(self, client, admin):
        self._quote(client, admin)
        self._quote(client, admin, text="Ha.", tags=["coding"], tone="humor")
        body = client.get("/api/admin/motivation/quotes?tag=coding", headers=auth(admin)).json()
        assert [q["text"] for q in body["items"]] == ["Ha."]
        body = client.get("/api/admin/motivation/quotes?tone=inspiration", headers=auth(admin)).json()
        assert body["total"] == 1

    def test_update_and_delete(self, client, db, admin):
        q = self._quote(client, admin)
        r = client.put(f"/api/admin/motivation/quotes/{q['id']}", headers=auth(admin), json={"active": False, "author": " Anon "})
        assert r.json()["active"] is False
        assert r.json()["author"] == "Anon"
        assert client.delete(f"/api/admin/motivation/quotes/{q['id']}", headers=auth(admin)).json() == {"ok": True}
        assert db.query(MotivationQuote).count() == 0

    def test_send_test_delivers_to_admin(self, client, db, admin):
        q = self._quote(client, admin)
        r = client.post("/api/admin/motivation/send-test", headers=auth(admin))
        assert r.json() == {"ok": True, "sent": 1, "quoteId": q["id"]}
        n = db.query(Notification).filter(Notification.user_id == admin.id).one()
        assert n.type == "motivation"
        assert n.message == "Keep going."

    def test_send_without_quotes(self, client, admin):
        assert client.post("/api/admin/motivation/send-test", headers=auth(admin)).json() == {
            "ok": False, "message": "No matching quote",
        }

    def test_run_once_for_one_user(self, client, admin, alice):
        q = self._quote(client, admin)
        r = client.post("/api/admin/motivation/run-once", headers=auth(admin), json={"userId": alice.id})
        assert r.json()["quoteId"] == q["id"]

    def test_preview_counts_opted_in_users(self, client, admin, alice, bob):
        client.put("/api/users/me/motivation-prefs", headers=auth(alice), json={"enabled": True, "interests": ["fitness"]})
        client.put("/api/users/me/motivation-prefs", headers=auth(bob), json={"enabled": True, "interests": ["music"]})
        body = client.post("/api/admin/motivation/quotes/preview", headers=auth(admin), json={"tags": ["fitness"]}).json()
        assert body["estimatedUsers"] == 1
        assert body["sampleUsers"] == [{"id": alice.id, "pseudonym": "alice"}]
        assert body["tone"] == "inspiration"

    def test_health_reports_counts(self, client, admin):
        self._quote(client, admin)
        body = client.get("/api/admin/motivation/health", headers=auth(admin)).json()
        assert body["totalQuotes"] == 1
        assert body["activeQuotes"] == 1
        assert body["deliveries7d"] == 0


# ===================================================================
# Motivation delivery cycle
# ===================================================================

MORNING = datetime(2026, 1, 5, 9, 20)


class TestMotivationCycle:
    @pytest.fixture
    def opted_in(self, client, admin, alice, bob):
        for text in ("Keep going.", "One more step."):
            client.post("/api/admin/motivation/quotes", headers=auth(admin),
                        json={"text": text, "tags": ["universal"], "tone": "inspiration"})
        client.put("/api/users/me/motivation-prefs", headers=auth(alice), json={"enabled": True, "hourLocal": 9})
        client.put("/api/users/me/motivation-prefs", headers=auth(bob), json={"enabled": True, "hourLocal": 14})

    def test_window_wraps_midnight(self):
        assert in_window(0, datetime(2026, 1, 5, 23, 45))
        assert in_window(9, datetime(2026, 1, 5, 8, 30))
        assert not in_window(9, datetime(2026, 1, 5, 9, 31))

    def test_only_users_inside_their_window(self, db, opted_in, alice):
        now = utcnow()
        assert run_cycle(db, now=now, local_now=MORNING, rng=random.Random(1)) == 1
        n = db.query(Notification).filter(Notification.type == "motivation").one()
        assert n.user_id == alice.id

    def test_daily_cap_then_next_day_rotates(self, db, opted_in, alice):
        now = utcnow()
        assert run_cycle(db, now=now, local_now=MORNING) == 1
        assert run_cycle(db, now=now + timedelta(minutes=5), local_now=MORNING + timedelta(minutes=5)) == 0

        run_cycle(db, now=now + timedelta(days=1), local_now=MORNING + timedelta(days=1))
        delivered = [d.quote_id for d in db.query(MotivationDelivery).order_by(MotivationDelivery.id).all()]
        assert len(delivered) == 2
        assert delivered[0] != delivered[1]

    def test_raised_cap_allows_a_second_quote(self, db, opted_in, monkeypatch):
        monkeypatch.setattr(settings, "MOTIVATION_MAX_PER_DAY", 2)
        now = utcnow()
        assert run_cycle(db, now=now, local_now=MORNING) == 1
        assert run_cycle(db, now=now, local_now=MORNING) == 1
