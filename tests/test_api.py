"""
HTTP-level tests: routing, authentication, error mapping and validation.
"""

import pytest
from datetime import datetime


class TestPublicEndpoints:

    @pytest.mark.asyncio
    async def test_slots_require_all_parameters(self, client, make_user, make_topic):
        user = await make_user()
        topic = await make_topic(user)

        response = await client.get("/api/public/slots", params={"userId": user.id, "topicId": topic.id})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_slots_for_monday(self, client, make_user, make_topic, make_rule):
        user = await make_user()
        topic = await make_topic(user, duration_minutes=30)
        await make_rule(user, day_of_week=1, start_time="09:00", end_time="10:00")

        response = await client.get("/api/public/slots", params={
            "userId": user.id, "topicId": topic.id, "start": "2024-01-01", "end": "2024-01-07",
        })

        assert response.status_code == 200
        assert [(s["date"], s["time"]) for s in response.json()] == [
            ("2024-01-01", "09:00"),
            ("2024-01-01", "09:30"),
        ]

    @pytest.mark.asyncio
    async def test_slots_unknown_topic_is_404(self, client, make_user):
        user = await make_user()

        response = await client.get("/api/public/slots", params={
            "userId": user.id, "topicId": 999, "start": "2024-01-01", "end": "2024-01-07",
        })

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_book_then_conflict_then_cancel(self, client, make_user, make_topic):
        user = await make_user()
        topic = await make_topic(user, duration_minutes=30)
        payload = {
            "topic_id": topic.id,
            "slot_timestamp": "2024-01-01T09:00:00",
            "customer_name": "Parent",
            "customer_email": "parent@example.org",
        }

        booked = await client.post("/api/public/book", json=payload)
        assert booked.status_code == 201
        assert booked.json()["slot_end_time"] == "2024-01-01T09:30:00"

        conflict = await client.post("/api/public/book", json={**payload, "slot_timestamp": "2024-01-01T09:15:00"})
        assert conflict.status_code == 409

        token = booked.json()["cancellation_token"]
        cancelled = await client.post("/api/public/cancel", json={"token": token, "reason": "Ill"})
        assert cancelled.json() == {"success": True}

        again = await client.post("/api/public/cancel", json={"token": token})
        assert again.status_code == 400

    @pytest.mark.asyncio
    async def test_recover_does_not_reveal_addresses(self, client, make_user, make_booking):
        user = await make_user()
        await make_booking(user, datetime(2024, 1, 2, 9), datetime(2024, 1, 2, 9, 30))

        known = await client.post("/api/public/recover", json={"email": "parent@example.org"})
        unknown = await client.post("/api/public/recover", json={"email": "nobody@example.org"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert known.json()["success"] is True

    @pytest.mark.asyncio
    async def test_directory_and_departments(self, client, make_user, make_department, make_rule):
        user = await make_user(display_name="Anna")
        await make_rule(user, day_of_week=1)
        await make_department("Science", [user])

        departments = await client.get("/api/public/departments")
        users = await client.get("/api/public/users")

        assert [d["name"] for d in departments.json()] == ["Science"]
        assert users.json()[0]["has_availability"] is True
        assert users.json()[0]["departments"][0]["name"] == "Science"

    @pytest.mark.asyncio
    async def test_setup_only_once(self, client):
        assert (await client.get("/api/public/setup-status")).json() == {"is_setup": False}

        payload = {"username": "admin", "password": "pw", "display_name": "Admin"}
        created = await client.post("/api/public/setup", json=payload)
        assert created.status_code == 201
        assert created.json()["is_admin"] is True

        assert (await client.get("/api/public/setup-status")).json() == {"is_setup": True}
        assert (await client.post("/api/public/setup", json={**payload, "username": "x"})).status_code == 403


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_login_sets_cookie_and_me_works(self, client, make_user):
        user = await make_user("mentor", password="secret")

        response = await client.post("/api/auth/login", json={"username": "mentor", "password": "secret"})

        assert response.status_code == 200
        assert "terminplaner_session" in response.cookies
        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {response.json()['token']}"})
        assert me.json()["id"] == user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, make_user):
        await make_user("mentor", password="secret")
        response = await client.post("/api/auth/login", json={"username": "mentor", "password": "nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_protected_routes_need_session(self, client):
        assert (await client.get("/api/topics/mine")).status_code == 401
        bad = await client.get("/api/topics/mine", headers={"Authorization": "Bearer not.a.token"})
        assert bad.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_routes_need_admin(self, client, make_user, auth_headers):
        user = await make_user()
        response = await client.get("/api/admin/users/", headers=auth_headers(user))
        assert response.status_code == 403


class TestUserResources:

    @pytest.mark.asyncio
    async def test_availability_crud_and_validation(self, client, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)

        invalid = await client.post("/api/availability/", headers=headers, json={
            "recurrence": "weekly", "start_time": "09:00", "end_time": "10:00",
        })
        assert invalid.status_code == 422

        created = await client.post("/api/availability/", headers=headers, json={
            "recurrence": "weekly", "day_of_week": 1, "start_time": "09:00", "end_time": "10:00",
        })
        assert created.status_code == 201
        assert created.json()["batch_config_id"] is None

        listed = await client.get("/api/availability/mine", headers=headers)
        assert [r["id"] for r in listed.json()] == [created.json()["id"]]

        deleted = await client.delete(f"/api/availability/{created.json()['id']}", headers=headers)
        assert deleted.status_code == 200

    @pytest.mark.asyncio
    async def test_batch_owned_rows_are_forbidden(self, client, make_user, auth_headers):
        admin = await make_user(is_admin=True)
        mentor = await make_user()

        batch = await client.post("/api/admin/batch/", headers=auth_headers(admin), json={
            "name": "Mornings",
            "rule_type": "availability",
            "config_data": {"recurrence": "weekly", "day_of_week": 1, "start_time": "09:00", "end_time": "10:00"},
            "user_ids": [mentor.id],
        })
        assert batch.status_code == 201
        assert batch.json()["user_ids"] == [mentor.id]

        rules = (await client.get("/api/availability/mine", headers=auth_headers(mentor))).json()
        assert rules[0]["batch_config_id"] == batch.json()["id"]

        response = await client.delete(f"/api/availability/{rules[0]['id']}", headers=auth_headers(mentor))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_provider_bookings(self, client, make_user, make_booking, auth_headers):
        provider = await make_user()
        booking = await make_booking(provider, datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10))
        headers = auth_headers(provider)

        archived = await client.post(f"/api/bookings/{booking.id}/archive", headers=headers)
        assert archived.json()["is_archived"] is True

        listed = await client.get("/api/bookings/mine", params={"archived": True}, headers=headers)
        assert [b["id"] for b in listed.json()] == [booking.id]


class TestAdministration:

    @pytest.mark.asyncio
    async def test_batch_lifecycle(self, client, make_user, make_department, auth_headers):
        admin = await make_user(is_admin=True)
        member = await make_user()
        department = await make_department("Science", [member])
        headers = auth_headers(admin)

        bad = await client.post("/api/admin/batch/", headers=headers, json={
            "name": "Broken", "rule_type": "topic", "config_data": {"title": "No duration"},
        })
        assert bad.status_code == 422

        created = await client.post("/api/admin/batch/", headers=headers, json={
            "name": "Office hours",
            "rule_type": "topic",
            "target_type": "department",
            "config_data": {"title": "Office hours", "duration_minutes": 30},
            "apply_to_future": True,
            "department_ids": [department.id],
        })
        assert created.status_code == 201
        batch_id = created.json()["id"]
        assert created.json()["departments"] == [{"id": department.id, "name": "Science"}]

        topics = await client.get(f"/api/public/users/{member.id}/topics")
        assert [t["batch_config_id"] for t in topics.json()] == [batch_id]

        newcomer = await client.post("/api/admin/users/", headers=headers, json={
            "username": "newcomer", "display_name": "Newcomer", "password": "pw",
        })
        assert newcomer.status_code == 201

        moved = await client.put(f"/api/admin/departments/{department.id}", headers=headers, json={
            "user_ids": [newcomer.json()["id"]],
        })
        assert [u["id"] for u in moved.json()["users"]] == [newcomer.json()["id"]]
        assert (await client.get(f"/api/public/users/{member.id}/topics")).json() == []
        assert len((await client.get(f"/api/public/users/{newcomer.json()['id']}/topics")).json()) == 1

        reconciled = await client.post(f"/api/admin/batch/{batch_id}/reconcile", headers=headers)
        assert reconciled.status_code == 200

        listed = await client.get("/api/admin/batch/", headers=headers)
        assert [b["id"] for b in listed.json()] == [batch_id]

        deleted = await client.delete(f"/api/admin/batch/{batch_id}", headers=headers)
        assert deleted.status_code == 200
        assert (await client.get(f"/api/public/users/{newcomer.json()['id']}/topics")).json() == []

        missing = await client.delete(f"/api/admin/batch/{batch_id}", headers=headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_settings(self, client, make_user, auth_headers):
        admin = await make_user(is_admin=True)
        headers = auth_headers(admin)

        saved = await client.post("/api/admin/settings/", headers=headers, json={"key": "app_title", "value": "Sprechtag"})
        await client.post("/api/admin/settings/", headers=headers, json={"key": "min_booking_notice_hours", "value": "24"})

        assert saved.json() == {"key": "app_title", "value": "Sprechtag"}
        assert (await client.get("/api/public/settings")).json() == {"app_title": "Sprechtag"}
        assert len((await client.get("/api/admin/settings/", headers=headers)).json()) == 2


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}
