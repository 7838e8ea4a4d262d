# app/services/completion_rules.py
"""
Completion Rules Engine

Decides whether a logged CPD record has met every completion rule attached
to it. Rules are ANDed: each is evaluated on its own and all must pass
before a certificate can be issued. A record without rules is complete
(manual logging is trusted self-reporting).

Rule types:
    assessment_pass  - best passing attempt scored >= min_score
    evidence_upload  - at least min_files uploaded, with any required types
    watch_time       - watchPercent in the record notes >= min_watch_percent
    attendance       - attendanceConfirmed in the record notes, when required

Bad configs or missing data fail the rule with an explanation; evaluation
never raises and never writes.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session
from app.core.exceptions import NotFoundError
from app.core.utils import format_hours
from app.models.activity import AssessmentAttempt
from app.models.cpd_record import CPDRecord, CompletionRule, Evidence
from app.schemas.completion import (
    RULE_TYPES,
    AssessmentPassConfig,
    AttendanceConfig,
    CompletionRuleConfig,
    EvidenceUploadConfig,
    WatchTimeConfig,
)

logger = logging.getLogger(__name__)

_config_adapter = TypeAdapter(CompletionRuleConfig)


@dataclass
class RuleEvaluation:
    rule_id: int
    rule_name: str
    rule_type: str
    passed: bool
    detail: str


@dataclass
class CompletionCheckResult:
    cpd_record_id: int
    all_passed: bool
    eligible_for_certificate: bool
    rules: List[RuleEvaluation] = field(default_factory=list)


def parse_rule_config(rule: CompletionRule):
    """
    Validate a stored config against the model for the rule's type.

    Only a missing or blank config means "use the defaults"; stored text
    that is not valid JSON raises ValueError so the rule fails.
    """
    raw = rule.config
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        payload = {}
    elif isinstance(raw, str):
        payload = json.loads(raw)
    else:
        payload = raw
    if not isinstance(payload, dict):
        raise ValueError("config must be a JSON object")
    return _config_adapter.validate_python({**payload, "rule_type": rule.rule_type})


class CompletionRuleEvaluator:
    def __init__(self, db: Session):
        self.db = db
        self._checks: Dict[str, Callable] = {
            "assessment_pass": self._check_assessment_pass,
            "evidence_upload": self._check_evidence_upload,
            "watch_time": self._check_watch_time,
            "attendance": self._check_attendance,
        }

    def evaluate(self, record: CPDRecord) -> CompletionCheckResult:
        rules = (
            self.db.query(CompletionRule)
            .filter(
                CompletionRule.cpd_record_id == record.id,
                CompletionRule.active == True,  # noqa: E712
            )
            .order_by(CompletionRule.id)
            .all()
        )

        if not rules:
            return CompletionCheckResult(
                cpd_record_id=record.id,
                all_passed=True,
                eligible_for_certificate=True,
                rules=[],
            )

        evaluations = [self.evaluate_rule(record, rule) for rule in rules]
        all_passed = all(e.passed for e in evaluations)

        return CompletionCheckResult(
            cpd_record_id=record.id,
            all_passed=all_passed,
            eligible_for_certificate=all_passed,
            rules=evaluations,
        )

    def evaluate_rule(self, record: CPDRecord, rule: CompletionRule) -> RuleEvaluation:
        if rule.rule_type not in RULE_TYPES:
            passed, detail = False, f"Unknown rule type: {rule.rule_type}"
        else:
            try:
                config = parse_rule_config(rule)
            except (ValidationError, ValueError) as e:
                logger.warning(f"Completion rule {rule.id} has an invalid config: {e}")
                passed, detail = False, f"Invalid rule configuration: {_short_error(e)}"
            else:
                passed, detail = self._checks[rule.rule_type](record, config)

        return RuleEvaluation(
            rule_id=rule.id,
            rule_name=rule.name,
            rule_type=rule.rule_type,
            passed=passed,
            detail=detail,
        )

    def _check_assessment_pass(self, record: CPDRecord, config: AssessmentPassConfig):
        best_attempt = (
            self.db.query(AssessmentAttempt)
            .filter(
                AssessmentAttempt.user_id == record.user_id,
                AssessmentAttempt.assessment_id == config.assessment_id,
                AssessmentAttempt.passed == True,  # noqa: E712
            )
            .order_by(AssessmentAttempt.score.desc())
            .first()
        )
        if not best_attempt:
            return False, "No passing attempt found"

        passed = best_attempt.score >= config.min_score
        detail = (
            f"Score: {format_hours(best_attempt.score)}% "
            f"(required: {format_hours(config.min_score)}%)"
        )
        return passed, detail

    def _check_evidence_upload(self, record: CPDRecord, config: EvidenceUploadConfig):
        evidence = (
            self.db.query(Evidence)
            .filter(
                Evidence.user_id == record.user_id,
                Evidence.cpd_record_id == record.id,
            )
            .all()
        )
        count = len(evidence)

        if count < config.min_files:
            return False, f"{count} file(s) uploaded (required: {config.min_files})"

        if config.required_types:
            uploaded_types = {e.file_type for e in evidence}
            missing = [t for t in config.required_types if t not in uploaded_types]
            if missing:
                return False, f"Missing required file types: {', '.join(missing)}"
            return True, f"{count} file(s) uploaded with required types"

        return True, f"{count} file(s) uploaded (required: {config.min_files})"

    def _check_watch_time(self, record: CPDRecord, config: WatchTimeConfig):
        meta = record.get_notes_metadata()
        if meta is None:
            return False, "No watch time data found"

        watch_percent = meta.get("watchPercent", 0)
        if isinstance(watch_percent, bool) or not isinstance(watch_percent, (int, float)):
            return False, "No watch time data found"

        passed = watch_percent >= config.min_watch_percent
        detail = (
            f"Watched: {format_hours(watch_percent)}% "
            f"(required: {format_hours(config.min_watch_percent)}%)"
        )
        return passed, detail

    def _check_attendance(self, record: CPDRecord, config: AttendanceConfig):
        if not config.confirmation_required:
            return True, "No confirmation required"

        meta = record.get_notes_metadata()
        if meta is None:
            return False, "No attendance data found"

        if meta.get("attendanceConfirmed") is True:
            return True, "Attendance confirmed"
        return False, "Attendance not yet confirmed"


def _short_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        first = error.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        return f"{location}: {first.get('msg')}" if location else first.get("msg", "")
    return str(error)


class CompletionService:
    """Looks up CPD records and evaluates their completion rules"""

    def __init__(self, db: Session):
        self.db = db
        self.evaluator = CompletionRuleEvaluator(db)

    def get_record(self, cpd_record_id: int, lock: bool = False) -> CPDRecord:
        query = self.db.query(CPDRecord).filter(CPDRecord.id == cpd_record_id)
        if lock:
            query = query.with_for_update()
        record = query.first()
        if not record:
            raise NotFoundError("CPD record", cpd_record_id)
        return record

    def evaluate(self, cpd_record_id: int) -> CompletionCheckResult:
        record = self.get_record(cpd_record_id)
        return self.evaluator.evaluate(record)
