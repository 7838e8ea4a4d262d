"""
HTTP surface: routing, status codes and error mapping.
"""
from datetime import timedelta

import pytest

from factories import (
    make_activity,
    make_assessment,
    make_credential,
    make_holding,
    make_mapping,
    make_record,
    make_rule,
    make_user,
)
from app.core.utils import utcnow


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def holding(db, user):
    credential = make_credential(db, name="CPA", region="US", hours_required=40, ethics_hours=4)
    return make_holding(
        db,
        user,
        credential,
        jurisdiction="NY",
        renewal_deadline=utcnow() + timedelta(days=180),
        is_primary=True,
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestCreditRoutes:
    def test_credit_views_for_user(self, client, db, user, holding):
        activity = make_activity(db, title="Revenue Recognition Update")
        make_mapping(db, activity, country="US", credit_amount=1.5, credit_category="technical")

        response = client.get(f"/api/activities/{activity.id}/credits", params={"user_id": user.id})

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Revenue Recognition Update"
        assert body["message"] is None
        view = body["credit_views"][0]
        assert view["holding_id"] == holding.id
        assert view["eligible"] is True
        assert view["total_credits"] == 1.5

    def test_credit_view_for_one_holding(self, client, db, holding):
        activity = make_activity(db)
        make_mapping(db, activity, country="US", exclusions=["NY"])

        response = client.get(f"/api/activities/{activity.id}/credits/{holding.id}")

        assert response.status_code == 200
        assert response.json()["eligible"] is False
        assert response.json()["total_credits"] == 0

    def test_unknown_activity_is_404(self, client, user):
        response = client.get("/api/activities/999/credits", params={"user_id": user.id})

        assert response.status_code == 404
        assert response.json()["detail"] == "Activity not found: 999"

    def test_user_without_holdings_gets_message(self, client, db, user):
        activity = make_activity(db)

        body = client.get(
            f"/api/activities/{activity.id}/credits", params={"user_id": user.id}
        ).json()

        assert body["credit_views"] == []
        assert body["message"].startswith("No credentials on file")


class TestComplianceRoutes:
    def test_summary(self, client, db, user, holding):
        make_record(db, user, hours=10)

        response = client.get(f"/api/compliance/{user.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["per_credential"][0]["total_needed"] == 30
        assert body["summary"]["compliant"] is False
        assert {r["category"] for r in body["recommendations"]} == {"ethics", "general"}

    def test_gaps_only(self, client, db, user, holding):
        response = client.get(f"/api/compliance/{user.id}/gaps")

        assert response.status_code == 200
        assert response.json()[0]["credential_name"] == "CPA"

    def test_unknown_user_is_404(self, client):
        assert client.get("/api/compliance/555").status_code == 404


class TestCompletionRoutes:
    def test_issue_then_return_existing(self, client, db, user, holding):
        record = make_record(db, user, notes={"attendanceConfirmed": True})
        make_rule(db, record, "attendance", {"confirmationRequired": True})

        first = client.post(f"/api/completion/{record.id}")
        second = client.post(f"/api/completion/{record.id}")

        assert first.status_code == 201
        assert first.json()["created"] is True
        assert second.status_code == 200
        assert second.json()["created"] is False
        code = first.json()["certificate"]["certificate_code"]
        assert second.json()["certificate"]["certificate_code"] == code

        verify = client.get(f"/api/certificates/verify/{code}")
        assert verify.status_code == 200
        assert verify.json()["valid"] is True

    def test_failing_rules(self, client, db, user):
        record = make_record(db, user)
        make_rule(db, record, "watch_time", {"minWatchPercent": 80})

        check = client.get(f"/api/completion/{record.id}")
        issue = client.post(f"/api/completion/{record.id}")

        assert check.json()["all_passed"] is False
        assert check.json()["rules"][0]["detail"] == "No watch time data found"
        assert issue.status_code == 200
        assert issue.json()["certificate"] is None

    def test_revoke(self, client, db, user):
        record = make_record(db, user)
        certificate_id = client.post(f"/api/completion/{record.id}").json()["certificate"]["id"]

        response = client.post(f"/api/certificates/{certificate_id}/revoke")
        again = client.post(f"/api/certificates/{certificate_id}/revoke")

        assert response.json()["status"] == "revoked"
        assert again.status_code == 400
        assert again.json()["field"] == "status"


class TestAllocationRoutes:
    def test_set_and_list(self, client, db, user, holding):
        record = make_record(db, user, hours=3)

        response = client.put(
            f"/api/allocations/{record.id}",
            json={"allocations": [{"holding_id": holding.id, "hours": 2}]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_allocated"] == 2
        assert body["unallocated"] == 1
        assert body["allocations"][0]["credential_name"] == "CPA"

        listed = client.get("/api/allocations/", params={"cpd_record_id": record.id})
        assert [a["hours"] for a in listed.json()] == [2]

    def test_over_allocation_is_400(self, client, db, user, holding):
        other = make_holding(db, user, make_credential(db, name="CFP"))
        record = make_record(db, user, hours=3)

        response = client.put(
            f"/api/allocations/{record.id}",
            json={
                "allocations": [
                    {"holding_id": holding.id, "hours": 2},
                    {"holding_id": other.id, "hours": 1.5},
                ]
            },
        )

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Total allocated hours (3.5) exceeds record hours (3)",
            "field": "allocations",
        }


class TestRulePackRoutes:
    def test_create_and_resolve(self, client, db):
        credential = make_credential(db)
        rules = {"hoursRequired": 120, "categoryRules": {"ethics": {"min": 4}}}

        created = client.post(
            "/api/rule-packs/",
            json={
                "credential_id": credential.id,
                "name": "2025 rules",
                "rules": rules,
                "effective_from": "2025-01-01",
            },
        )
        resolved = client.get(
            "/api/rule-packs/resolve",
            params={"credential_id": credential.id, "date": "2025-08-01"},
        )

        assert created.status_code == 201
        assert created.json()["version"] == 1
        assert created.json()["rules"] == rules
        assert resolved.json()["source"] == "rule_pack"
        assert resolved.json()["rules"] == rules

        fetched = client.get(f"/api/rule-packs/{created.json()['id']}")
        assert fetched.json()["name"] == "2025 rules"

    def test_non_object_rules_are_422(self, client, db):
        credential = make_credential(db)

        response = client.post(
            "/api/rule-packs/",
            json={
                "credential_id": credential.id,
                "name": "Broken",
                "rules": ["not", "an", "object"],
                "effective_from": "2025-01-01",
            },
        )

        assert response.status_code == 422

    def test_missing_pack_is_404(self, client):
        assert client.get("/api/rule-packs/31337").status_code == 404


class TestCPDRecordRoutes:
    def test_patch(self, client, db, user):
        record = make_record(db, user, title="Old")

        response = client.patch(f"/api/cpd-records/{record.id}", json={"title": "New"})

        assert response.status_code == 200
        assert response.json()["title"] == "New"

    def test_null_hours_is_400(self, client, db, user):
        record = make_record(db, user, hours=2)

        response = client.patch(f"/api/cpd-records/{record.id}", json={"hours": None})

        assert response.status_code == 400
        assert response.json() == {"detail": "hours cannot be empty", "field": "hours"}

    def test_empty_patch_is_422(self, client, db, user):
        record = make_record(db, user)

        assert client.patch(f"/api/cpd-records/{record.id}", json={}).status_code == 422

    def test_platform_record_delete_is_400(self, client, db, user):
        record = make_record(db, user, source="platform")

        response = client.delete(f"/api/cpd-records/{record.id}")

        assert response.status_code == 400
        assert response.json()["field"] == "source"

    def test_delete(self, client, db, user):
        record = make_record(db, user)

        assert client.delete(f"/api/cpd-records/{record.id}").json() == {
            "deleted": True,
            "id": record.id,
        }
        assert client.get(f"/api/cpd-records/{record.id}").status_code == 404


class TestActivityRoutes:
    def test_create_publish_and_resolve(self, client, db, user, holding):
        created = client.post(
            "/api/activities/",
            json={
                "type": "webinar",
                "title": "Audit Sampling",
                "duration_minutes": 90,
                "credit_mappings": [
                    {"country": "US", "credit_category": "technical", "credit_amount": 1.5}
                ],
            },
        )

        assert created.status_code == 201
        activity = created.json()
        assert activity["publish_status"] == "draft"
        assert activity["credit_mappings"][0]["credit_amount"] == 1.5

        published = client.post(f"/api/activities/{activity['id']}/publish")
        credits = client.get(
            f"/api/activities/{activity['id']}/credits", params={"user_id": user.id}
        )

        assert published.json()["publish_status"] == "published"
        assert credits.json()["credit_views"][0]["total_credits"] == 1.5

    def test_publish_without_mapping_is_400(self, client):
        activity = client.post(
            "/api/activities/", json={"type": "article", "title": "Reading list"}
        ).json()

        response = client.post(f"/api/activities/{activity['id']}/publish")

        assert response.status_code == 400
        assert response.json()["field"] == "credit_mappings"

    def test_add_and_deactivate_mapping(self, client, db):
        activity = make_activity(db, publish_status="draft")

        added = client.post(
            f"/api/activities/{activity.id}/mappings",
            json={
                "country": "INTL",
                "credit_category": "general",
                "credit_amount": 1,
                "state_province": ["on"],
            },
        )
        removed = client.delete(f"/api/activities/{activity.id}/mappings/{added.json()['id']}")

        assert added.status_code == 201
        assert added.json()["state_province"] == ["ON"]
        assert removed.json()["active"] is False

    def test_non_positive_amount_is_422(self, client, db):
        activity = make_activity(db, publish_status="draft")

        response = client.post(
            f"/api/activities/{activity.id}/mappings",
            json={"country": "US", "credit_category": "general", "credit_amount": 0},
        )

        assert response.status_code == 422


class TestAssessmentRoutes:
    def test_passing_attempt_returns_certificate(self, client, db, user, holding):
        assessment = make_assessment(db, hours=1.5, category="ethics")

        response = client.post(
            f"/api/assessments/{assessment.id}/attempts",
            json={"user_id": user.id, "score": 80},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["passed"] is True
        assert body["attempts_remaining"] == 2
        assert body["certificate_code"].startswith("CERT-")

        record = client.get(f"/api/cpd-records/{body['cpd_record_id']}").json()
        assert record["source"] == "platform"
        assert client.delete(f"/api/cpd-records/{body['cpd_record_id']}").status_code == 400

    def test_unknown_assessment_is_404(self, client, user):
        response = client.post(
            "/api/assessments/77/attempts", json={"user_id": user.id, "score": 80}
        )

        assert response.status_code == 404
