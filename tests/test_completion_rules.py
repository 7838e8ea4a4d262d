"""
Completion rule evaluation and certificate issuance.
"""
import re

import pytest

from factories import (
    make_assessment,
    make_attempt,
    make_credential,
    make_evidence,
    make_holding,
    make_record,
    make_rule,
    make_user,
)
from app.core.exceptions import NotFoundError, ValidationFailure
from app.models import Certificate
from app.services.certificate_service import CertificateService, generate_certificate_code
from app.services.completion_rules import CompletionService


@pytest.fixture
def user(db):
    user = make_user(db)
    make_holding(db, user, make_credential(db, name="CPA"), is_primary=True)
    return user


@pytest.fixture
def record(db, user):
    return make_record(db, user, hours=2, title="Ethics for Auditors", category="ethics")


def _evaluate(db, record):
    return CompletionService(db).evaluate(record.id)


class TestNoRules:
    def test_record_without_rules_is_complete(self, db, record):
        result = _evaluate(db, record)

        assert result.all_passed is True
        assert result.eligible_for_certificate is True
        assert result.rules == []

    def test_inactive_rules_are_ignored(self, db, record):
        make_rule(db, record, "attendance", {"confirmationRequired": True}, active=False)

        assert _evaluate(db, record).all_passed is True

    def test_unknown_record(self, db):
        with pytest.raises(NotFoundError, match="CPD record not found: 404"):
            CompletionService(db).evaluate(404)


class TestAssessmentPass:
    def test_score_below_minimum_fails(self, db, user, record):
        assessment = make_assessment(db)
        make_attempt(db, user, assessment, score=65)
        make_rule(db, record, "assessment_pass", {"assessment_id": assessment.id, "min_score": 70})

        result = _evaluate(db, record)

        assert result.all_passed is False
        assert result.eligible_for_certificate is False
        assert result.rules[0].detail == "Score: 65% (required: 70%)"

    def test_best_passing_attempt_is_used(self, db, user, record):
        assessment = make_assessment(db)
        make_attempt(db, user, assessment, score=65)
        make_attempt(db, user, assessment, score=80)
        make_attempt(db, user, assessment, score=95, passed=False)
        make_rule(db, record, "assessment_pass", {"assessmentId": assessment.id, "minScore": 70})

        result = _evaluate(db, record)

        assert result.all_passed is True
        assert result.rules[0].detail == "Score: 80% (required: 70%)"

    def test_no_passing_attempt(self, db, user, record):
        assessment = make_assessment(db)
        make_attempt(db, user, assessment, score=40, passed=False)
        make_rule(db, record, "assessment_pass", {"quizId": assessment.id, "minScore": 70})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail == "No passing attempt found"

    def test_other_users_attempts_do_not_count(self, db, record):
        assessment = make_assessment(db)
        make_attempt(db, make_user(db), assessment, score=100)
        make_rule(db, record, "assessment_pass", {"assessment_id": assessment.id, "min_score": 70})

        assert _evaluate(db, record).all_passed is False


class TestEvidenceUpload:
    def test_too_few_files(self, db, user, record):
        make_evidence(db, user, record)
        make_rule(db, record, "evidence_upload", {"minFiles": 2})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail == "1 file(s) uploaded (required: 2)"

    def test_enough_files(self, db, user, record):
        make_evidence(db, user, record)
        make_evidence(db, user, make_record(db, user))
        make_rule(db, record, "evidence_upload", {})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is True
        assert rule.detail == "1 file(s) uploaded (required: 1)"

    def test_missing_required_type(self, db, user, record):
        make_evidence(db, user, record, file_type="image/png")
        make_rule(db, record, "evidence_upload", {"requiredTypes": ["application/pdf"]})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail == "Missing required file types: application/pdf"

    def test_required_type_present(self, db, user, record):
        make_evidence(db, user, record, file_type="application/pdf")
        make_rule(db, record, "evidence_upload", {"required_types": ["application/pdf"]})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is True
        assert rule.detail == "1 file(s) uploaded with required types"


class TestWatchTime:
    def test_enough_watch_time(self, db, user):
        record = make_record(db, user, notes={"watchPercent": 85})
        make_rule(db, record, "watch_time", {"minWatchPercent": 80})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is True
        assert rule.detail == "Watched: 85% (required: 80%)"

    def test_not_enough_watch_time(self, db, user):
        record = make_record(db, user, notes={"watchPercent": 42.5})
        make_rule(db, record, "watch_time", {"min_watch_percent": 80})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail == "Watched: 42.5% (required: 80%)"

    @pytest.mark.parametrize("notes", [None, "Great session, took notes", "{broken json"])
    def test_missing_watch_data(self, db, user, notes):
        record = make_record(db, user, notes=notes)
        make_rule(db, record, "watch_time", {"minWatchPercent": 80})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail == "No watch time data found"


class TestAttendance:
    def test_no_confirmation_required(self, db, record):
        make_rule(db, record, "attendance", {})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is True
        assert rule.detail == "No confirmation required"

    def test_confirmed(self, db, user):
        record = make_record(db, user, notes={"attendanceConfirmed": True})
        make_rule(db, record, "attendance", {"confirmationRequired": True})

        assert _evaluate(db, record).rules[0].detail == "Attendance confirmed"

    def test_not_confirmed(self, db, user):
        record = make_record(db, user, notes={"attendanceConfirmed": False})
        make_rule(db, record, "attendance", {"confirmationRequired": True})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail == "Attendance not yet confirmed"

    def test_no_attendance_data(self, db, record):
        make_rule(db, record, "attendance", {"confirmationRequired": True})

        assert _evaluate(db, record).rules[0].detail == "No attendance data found"


class TestBadRules:
    def test_unknown_rule_type_fails(self, db, record):
        make_rule(db, record, "peer_review", {})

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail == "Unknown rule type: peer_review"

    def test_malformed_config_fails_without_raising(self, db, record):
        make_rule(db, record, "assessment_pass", "{not json")

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail.startswith("Invalid rule configuration")

    @pytest.mark.parametrize(
        "rule_type,config",
        [
            ("attendance", '{"confirmationRequired": tru'),
            ("evidence_upload", '{"minFiles": 3'),
            ("watch_time", "[80]"),
        ],
    )
    def test_corrupt_config_does_not_fall_back_to_defaults(self, db, record, rule_type, config):
        make_rule(db, record, rule_type, config)

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is False
        assert rule.detail.startswith("Invalid rule configuration")

    def test_corrupt_config_withholds_certificate(self, db, user):
        record = make_record(db, user)
        make_rule(db, record, "attendance", '{"confirmationRequired": tru')

        result = CertificateService(db).issue_certificate(record.id)

        assert result.certificate is None
        assert db.query(Certificate).count() == 0

    def test_blank_config_uses_defaults(self, db, record):
        make_rule(db, record, "attendance", "  ")

        rule = _evaluate(db, record).rules[0]

        assert rule.passed is True
        assert rule.detail == "No confirmation required"

    def test_all_rules_must_pass(self, db, user):
        record = make_record(db, user, notes={"watchPercent": 100})
        make_rule(db, record, "watch_time", {"minWatchPercent": 80})
        make_rule(db, record, "attendance", {"confirmationRequired": True})

        result = _evaluate(db, record)

        assert [r.passed for r in result.rules] == [True, False]
        assert result.all_passed is False

    def test_evaluation_is_repeatable(self, db, user):
        record = make_record(db, user, notes={"watchPercent": 50})
        make_rule(db, record, "watch_time", {"minWatchPercent": 80})
        make_rule(db, record, "evidence_upload", {})

        assert _evaluate(db, record) == _evaluate(db, record)


class TestCertificates:
    def test_code_format(self):
        assert re.fullmatch(r"CERT-2026-[a-z0-9]{8}", generate_certificate_code(2026))

    def test_issue_when_rules_pass(self, db, user, record):
        make_rule(db, record, "attendance", {})

        result = CertificateService(db).issue_certificate(record.id)

        assert result.created is True
        assert result.message == "All rules passed. Certificate generated."
        certificate = result.certificate
        assert certificate.status == "active"
        assert certificate.credential_name == "CPA"
        assert certificate.hours == 2
        assert certificate.verification_url.endswith(
            f"/api/certificates/verify/{certificate.certificate_code}"
        )

    def test_issuing_twice_returns_the_same_certificate(self, db, record):
        service = CertificateService(db)

        first = service.issue_certificate(record.id)
        second = service.issue_certificate(record.id)

        assert second.created is False
        assert second.message == "Certificate already exists for this activity."
        assert second.certificate.id == first.certificate.id
        assert db.query(Certificate).count() == 1

    def test_failing_rules_withhold_certificate(self, db, record):
        make_rule(db, record, "attendance", {"confirmationRequired": True})

        result = CertificateService(db).issue_certificate(record.id)

        assert result.certificate is None
        assert result.created is False
        assert result.check.all_passed is False
        assert db.query(Certificate).count() == 0

    def test_revoked_certificate_allows_reissue(self, db, record):
        service = CertificateService(db)
        first = service.issue_certificate(record.id).certificate

        revoked = service.revoke_certificate(first.id)
        reissued = service.issue_certificate(record.id)

        assert revoked.status == "revoked"
        assert revoked.revoked_at is not None
        assert reissued.created is True
        assert reissued.certificate.id != first.id

    def test_revoking_twice_is_rejected(self, db, record):
        service = CertificateService(db)
        certificate = service.issue_certificate(record.id).certificate
        service.revoke_certificate(certificate.id)

        with pytest.raises(ValidationFailure, match="already revoked"):
            service.revoke_certificate(certificate.id)

    def test_lookup_by_code(self, db, record):
        service = CertificateService(db)
        certificate = service.issue_certificate(record.id).certificate

        assert service.get_by_code(certificate.certificate_code).id == certificate.id
        with pytest.raises(NotFoundError):
            service.get_by_code("CERT-2000-missing0")
