"""Tests for API endpoints."""
from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from app.models import AuditLog, CountryVisit, User
from app.services.notification import NtfyNotifier, get_global_notifier

KOREAN_AIR_BODY = """
    예약번호: ABC123
    항공편: KE 123
    출발: 인천국제공항(ICN)
    도착: 나리타국제공항(NRT)
    출발일시: 2024년 3월 15일 14:30
    도착일시: 2024년 3월 15일 17:45
"""


async def _create_trip(client, headers, **overrides):
    payload = {"country": "France", "entry_date": "2024-01-01", "exit_date": "2024-01-15"}
    payload.update(overrides)
    return await client.post("/api/trips", json=payload, headers=headers)


async def _create_visa(client, headers, **overrides):
    payload = {
        "country_code": "th",
        "visa_type": "DTV",
        "issue_date": "2024-01-01",
        "expiry_date": "2099-01-01",
        "max_stay_days": 60,
    }
    payload.update(overrides)
    return await client.post("/api/visas", json=payload, headers=headers)


class TestIdentity:
    async def test_missing_header_is_unauthorized(self, client):
        response = await client.get("/api/trips")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    async def test_unknown_user(self, client, db_session):
        response = await client.get("/api/trips", headers={"X-User-Email": "ghost@example.com"})
        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    async def test_email_lookup_is_case_insensitive(self, client, user):
        response = await client.get("/api/users/me", headers={"X-User-Email": "Nomad@Example.com"})
        assert response.status_code == 200
        assert response.json()["id"] == user.id


class TestUsersAPI:
    async def test_register(self, client, db_session):
        response = await client.post("/api/users", json={"email": " New@Example.com ", "passport_country": "kr"})
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new@example.com"
        assert data["passport_country"] == "KR"
        assert data["timezone"] == "Asia/Seoul"

    async def test_register_duplicate(self, client, user):
        response = await client.post("/api/users", json={"email": user.email})
        assert response.status_code == 409

    async def test_register_invalid_email(self, client, db_session):
        response = await client.post("/api/users", json={"email": "not-an-email"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == "email"

    async def test_update_me(self, client, auth_headers):
        response = await client.put("/api/users/me", json={"notifications_enabled": False}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["notifications_enabled"] is False


class TestTripsAPI:
    async def test_create_and_list(self, client, auth_headers):
        response = await _create_trip(client, auth_headers, country="FR")
        assert response.status_code == 201
        trip = response.json()
        assert trip["country"] == "France"
        assert trip["is_schengen"] is True

        await _create_trip(client, auth_headers, country="Thailand", entry_date="2024-03-01", exit_date=None)

        response = await client.get("/api/trips", headers=auth_headers)
        trips = response.json()
        assert [t["country"] for t in trips] == ["Thailand", "France"]

        response = await client.get("/api/trips", params={"schengen_only": True}, headers=auth_headers)
        assert [t["country"] for t in response.json()] == ["France"]

    async def test_unknown_country_rejected(self, client, auth_headers):
        response = await _create_trip(client, auth_headers, country="Atlantis")
        assert response.status_code == 400
        details = response.json()["details"]
        assert details[0]["field"] == "country"
        assert "Unknown country" in details[0]["message"]

    async def test_exit_before_entry_rejected(self, client, auth_headers):
        response = await _create_trip(client, auth_headers, entry_date="2024-02-01", exit_date="2024-01-01")
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    async def test_missing_field_rejected(self, client, auth_headers):
        response = await client.post("/api/trips", json={"country": "France"}, headers=auth_headers)
        assert response.status_code == 400
        assert {d["field"] for d in response.json()["details"]} == {"entry_date"}

    async def test_update(self, client, auth_headers):
        trip_id = (await _create_trip(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/trips/{trip_id}", json={"exit_date": "2024-01-20"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["exit_date"] == "2024-01-20"

    async def test_update_exit_before_stored_entry(self, client, auth_headers):
        trip_id = (await _create_trip(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/trips/{trip_id}", json={"exit_date": "2023-12-01"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "exit_date must not be before entry_date"}

    async def test_update_zero_max_days(self, client, auth_headers):
        trip_id = (await _create_trip(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/trips/{trip_id}", json={"max_days": 0}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["max_days"] == 0

        response = await client.get("/api/trips", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()[0]["max_days"] == 0

    async def test_update_negative_max_days_rejected(self, client, auth_headers):
        trip_id = (await _create_trip(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/trips/{trip_id}", json={"max_days": -1}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "max_days"

    @pytest.mark.parametrize("field", ["entry_date", "country", "visa_type", "max_days"])
    async def test_update_null_required_field_rejected(self, client, auth_headers, field):
        trip_id = (await _create_trip(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/trips/{trip_id}", json={field: None}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == field

        response = await client.get(f"/api/trips/{trip_id}", headers=auth_headers)
        assert response.json()["country"] == "France"
        assert response.json()["entry_date"] == "2024-01-01"

    async def test_update_clears_exit_date(self, client, auth_headers):
        trip_id = (await _create_trip(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/trips/{trip_id}", json={"exit_date": None}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["exit_date"] is None

    async def test_other_users_trip_not_found(self, client, db_session, auth_headers):
        other = User(email="other@example.com")
        db_session.add(other)
        db_session.commit()
        visit = CountryVisit(user_id=other.id, country="Spain", entry_date=date(2024, 1, 1))
        db_session.add(visit)
        db_session.commit()

        response = await client.get(f"/api/trips/{visit.id}", headers=auth_headers)
        assert response.status_code == 404
        response = await client.delete(f"/api/trips/{visit.id}", headers=auth_headers)
        assert response.status_code == 404

    async def test_delete(self, client, auth_headers):
        trip_id = (await _create_trip(client, auth_headers)).json()["id"]
        response = await client.delete(f"/api/trips/{trip_id}", headers=auth_headers)
        assert response.json() == {"deleted": True}
        response = await client.get(f"/api/trips/{trip_id}", headers=auth_headers)
        assert response.status_code == 404

    async def test_mutations_are_audited(self, client, db_session, auth_headers, user):
        trip_id = (await _create_trip(client, auth_headers)).json()["id"]
        await client.delete(f"/api/trips/{trip_id}", headers=auth_headers)

        actions = [log.action for log in db_session.query(AuditLog).filter(AuditLog.user_id == user.id)]
        assert actions == ["create", "delete"]

        response = await client.get("/api/audit-logs", params={"resource_type": "trip"}, headers=auth_headers)
        logs = response.json()
        assert len(logs) == 2
        assert {log["resource_id"] for log in logs} == {trip_id}

    async def test_validate_planned_trip(self, client, auth_headers):
        await _create_trip(client, auth_headers, entry_date="2024-05-01", exit_date="2024-05-10")
        response = await client.post(
            "/api/trips/validate",
            json={"country": "Germany", "entry_date": "2024-06-01", "exit_date": "2024-08-29"},
            headers=auth_headers,
        )
        data = response.json()
        assert data["can_travel"] is False
        assert data["violates_rule"] is True
        assert data["max_stay_days"] == 80


class TestSchengenAPI:
    async def test_status(self, client, auth_headers):
        await _create_trip(client, auth_headers)
        await _create_trip(client, auth_headers, country="Thailand", entry_date="2024-02-01", exit_date="2024-02-20")

        response = await client.get("/api/schengen/status", params={"reference_date": "2024-06-01"}, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"]["used_days"] == 15
        assert data["status"]["remaining_days"] == 75
        assert data["status"]["is_compliant"] is True
        assert data["usage"] == "15/90일"
        assert data["max_stay_days"] == 75

    async def test_status_violation(self, client, auth_headers):
        await _create_trip(client, auth_headers, exit_date="2024-04-01")
        response = await client.get("/api/schengen/status", params={"reference_date": "2024-06-01"}, headers=auth_headers)
        data = response.json()
        assert data["status"]["used_days"] == 92
        assert data["status"]["is_compliant"] is False
        assert data["status"]["violations"][0]["days_over_limit"] == 2
        assert data["usage_percent"] == 100

    async def test_trip_changes_invalidate_cached_status(self, client, auth_headers):
        params = {"reference_date": "2024-06-01"}
        await _create_trip(client, auth_headers)
        first = await client.get("/api/schengen/status", params=params, headers=auth_headers)
        assert first.json()["status"]["used_days"] == 15

        await _create_trip(client, auth_headers, country="Italy", entry_date="2024-02-01", exit_date="2024-02-10")
        second = await client.get("/api/schengen/status", params=params, headers=auth_headers)
        assert second.json()["status"]["used_days"] == 25

    async def test_validate_non_schengen_destination(self, client, auth_headers):
        response = await client.post(
            "/api/schengen/validate-trip",
            json={"country": "Japan", "entry_date": "2024-06-01", "exit_date": "2024-12-01"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["can_travel"] is True

    async def test_safe_dates(self, client, auth_headers):
        response = await client.get(
            "/api/schengen/safe-dates",
            params={"duration": 5, "earliest": "2024-06-01"},
            headers=auth_headers,
        )
        data = response.json()
        assert data["found"] is True
        assert data["start_date"] == "2024-06-01"
        assert data["end_date"] == "2024-06-05"

    async def test_safe_dates_impossible_duration(self, client, auth_headers):
        response = await client.get(
            "/api/schengen/safe-dates",
            params={"duration": 91, "earliest": "2024-06-01"},
            headers=auth_headers,
        )
        data = response.json()
        assert data["found"] is False
        assert data["start_date"] is None


class TestCountriesAPI:
    async def test_schengen_filter(self, client):
        response = await client.get("/api/countries", params={"schengen": True})
        countries = response.json()
        assert len(countries) == 29
        assert all(c["is_schengen"] for c in countries)

    async def test_search(self, client):
        response = await client.get("/api/countries", params={"q": "fra"})
        assert response.json()[0]["code"] == "FR"

    async def test_by_code(self, client):
        response = await client.get("/api/countries/de")
        assert response.json()["name"] == "Germany"
        response = await client.get("/api/countries/zz")
        assert response.status_code == 404


class TestVisasAPI:
    async def test_create_visa(self, client, auth_headers):
        response = await _create_visa(client, auth_headers)
        assert response.status_code == 201
        visa = response.json()
        assert visa["country_code"] == "TH"
        assert visa["country_name"] == "Thailand"
        assert visa["status"] == "active"

    async def test_expiry_before_issue_rejected(self, client, auth_headers):
        response = await _create_visa(client, auth_headers, expiry_date="2023-01-01")
        assert response.status_code == 400

    async def test_entry_lifecycle(self, client, auth_headers):
        visa_id = (await _create_visa(client, auth_headers)).json()["id"]

        response = await client.post(
            "/api/visas/entries",
            json={"user_visa_id": visa_id, "entry_date": "2024-05-01", "entry_point": "BKK"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        entry = response.json()
        assert entry["country_visit_id"] is not None
        assert entry["stay_days"] is None

        # A second open entry on the same visa is refused
        response = await client.post(
            "/api/visas/entries",
            json={"user_visa_id": visa_id, "entry_date": "2024-05-10"},
            headers=auth_headers,
        )
        assert response.status_code == 400

        response = await client.put(
            f"/api/visas/entries/{entry['id']}", json={"exit_date": "2024-05-20"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["stay_days"] == 20

        trips = (await client.get("/api/trips", headers=auth_headers)).json()
        assert trips[0]["country"] == "Thailand"
        assert trips[0]["exit_date"] == "2024-05-20"

        entries = (await client.get("/api/visas/entries", params={"visa_id": visa_id}, headers=auth_headers)).json()
        assert len(entries) == 1

    async def test_entry_for_unknown_visa(self, client, auth_headers):
        response = await client.post(
            "/api/visas/entries",
            json={"user_visa_id": 999, "entry_date": "2024-05-01"},
            headers=auth_headers,
        )
        assert response.status_code == 404

    async def test_update_and_delete_visa(self, client, auth_headers):
        visa_id = (await _create_visa(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/visas/{visa_id}", json={"notes": "extended"}, headers=auth_headers)
        assert response.json()["notes"] == "extended"

        response = await client.delete(f"/api/visas/{visa_id}", headers=auth_headers)
        assert response.json() == {"deleted": True}
        assert (await client.get(f"/api/visas/{visa_id}", headers=auth_headers)).status_code == 404

    @pytest.mark.parametrize("field", ["expiry_date", "issue_date", "visa_type", "entry_type"])
    async def test_update_null_required_field_rejected(self, client, auth_headers, field):
        visa_id = (await _create_visa(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/visas/{visa_id}", json={field: None}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == field

    @pytest.mark.parametrize("max_stay_days", [0, -5])
    async def test_update_invalid_max_stay_rejected(self, client, auth_headers, max_stay_days):
        visa_id = (await _create_visa(client, auth_headers)).json()["id"]
        response = await client.put(
            f"/api/visas/{visa_id}", json={"max_stay_days": max_stay_days}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "max_stay_days"

        response = await client.get(f"/api/visas/{visa_id}", headers=auth_headers)
        assert response.json()["max_stay_days"] == 60

    async def test_update_clears_max_stay(self, client, auth_headers):
        visa_id = (await _create_visa(client, auth_headers)).json()["id"]
        response = await client.put(f"/api/visas/{visa_id}", json={"max_stay_days": None}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["max_stay_days"] is None

    async def test_update_entry_null_entry_date_rejected(self, client, auth_headers):
        visa_id = (await _create_visa(client, auth_headers)).json()["id"]
        entry = (await client.post(
            "/api/visas/entries",
            json={"user_visa_id": visa_id, "entry_date": "2024-05-01"},
            headers=auth_headers,
        )).json()

        response = await client.put(
            f"/api/visas/entries/{entry['id']}", json={"entry_date": None}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "entry_date"

        trips = (await client.get("/api/trips", headers=auth_headers)).json()
        assert trips[0]["entry_date"] == "2024-05-01"

    async def test_check_expiry(self, client, auth_headers):
        expiry = (date.today() + timedelta(days=5)).isoformat()
        await _create_visa(client, auth_headers, expiry_date=expiry)

        notifier = NtfyNotifier(ntfy_url="http://ntfy.test", ntfy_topic="dino")
        notifier._send_to_ntfy = AsyncMock(return_value=True)
        with patch("app.services.visa_alerts.get_global_notifier", return_value=notifier):
            response = await client.post("/api/visas/check-expiry", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["alerts_sent"] == 1
        notifier._send_to_ntfy.assert_awaited_once()


class TestStayTrackingAPI:
    async def _open_stay(self, client, headers, max_stay_days):
        visa_id = (await _create_visa(client, headers, max_stay_days=max_stay_days)).json()["id"]
        await client.post(
            "/api/visas/entries",
            json={"user_visa_id": visa_id, "entry_date": "2024-05-01"},
            headers=headers,
        )

    async def test_stay_tracking(self, client, auth_headers):
        await self._open_stay(client, auth_headers, 60)
        response = await client.get("/api/stay-tracking", params={"today": "2024-06-01"}, headers=auth_headers)
        data = response.json()
        stay = data["current_stays"][0]
        assert stay["days_in_country"] == 32
        assert stay["remaining_days"] == 28
        assert stay["status"] == "active"
        assert data["stats"]["total_current_stays"] == 1
        assert data["summary"]["has_active_stays"] is True

    async def test_overstay_warnings(self, client, auth_headers):
        await self._open_stay(client, auth_headers, 34)
        response = await client.get("/api/overstay-warnings", params={"today": "2024-06-01"}, headers=auth_headers)
        data = response.json()
        assert data["summary"]["total"] == 1
        warning = data["warnings"][0]
        assert warning["severity"] == "high"
        assert warning["days_remaining"] == 2


class TestEmailAPI:
    async def test_parse(self, client, auth_headers):
        response = await client.post(
            "/api/email/parse",
            json={"subject": "대한항공 항공권 예약 확인서", "body": KOREAN_AIR_BODY, "sender": "noreply@koreanair.com"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["flight_number"] == "KE123"
        assert data["data"]["departure"]["date"] == "2024-03-15"
        assert data["data"]["raw_body"] == ""

    async def test_parse_batch(self, client, auth_headers):
        response = await client.post(
            "/api/email/parse-batch",
            json={"emails": [
                {"subject": "대한항공 항공권 예약 확인서", "body": KOREAN_AIR_BODY, "sender": "noreply@koreanair.com"},
                {"subject": "Newsletter", "body": "Hello", "sender": "news@example.com"},
            ]},
            headers=auth_headers,
        )
        data = response.json()
        assert data["total"] == 2
        assert data["parsed"] == 1
        assert data["results"][1]["success"] is False

    async def test_empty_batch_rejected(self, client, auth_headers):
        response = await client.post("/api/email/parse-batch", json={"emails": []}, headers=auth_headers)
        assert response.status_code == 400


class TestNotificationsAPI:
    async def test_history_and_clear(self, client):
        notifier = get_global_notifier()
        notifier.clear_notifications()
        with patch.object(notifier, "_send_to_ntfy", AsyncMock(return_value=False)):
            await notifier.send_system_alert("Disk", "Low space")

        response = await client.get("/api/notifications")
        history = response.json()
        assert len(history) == 1
        assert history[0]["type"] == "system"

        response = await client.delete("/api/notifications")
        assert response.json() == {"status": "cleared"}
        assert (await client.get("/api/notifications")).json() == []

    async def test_send_test_notification(self, client):
        notifier = get_global_notifier()
        with patch.object(notifier, "_send_to_ntfy", AsyncMock(return_value=True)):
            response = await client.post("/api/notifications/test")
        assert response.json()["success"] is True


class TestMiddleware:
    async def test_rate_limit_headers(self, client):
        response = await client.get("/api/countries")
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"

    async def test_health_not_rate_limited(self, client):
        response = await client.get("/health")
        assert "X-RateLimit-Limit" not in response.headers

    async def test_csrf_token_endpoint_sets_cookie(self, client):
        response = await client.get("/api/csrf-token")
        token = response.json()["csrf_token"]
        assert f"csrf-token={token}" in response.headers["set-cookie"]
        assert response.json()["header_name"] == "X-CSRF-Token"
