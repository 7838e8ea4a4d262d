# app/services/compliance_gap.py - Per-credential compliance gap calculation

import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional, Sequence
from dataclasses import dataclass
from app.core.utils import round2, round_half_up, to_naive_utc, utcnow
from app.models.credential import Credential, CredentialHolding
from app.models.cpd_record import CPDRecord, CPDAllocation

logger = logging.getLogger(__name__)

ETHICS_CATEGORY = "ethics"
STRUCTURED_ACTIVITY_TYPES = ("structured", "verifiable")

# Rule pack payloads written by different tools use either key style
REQUIREMENT_KEYS = {
    "hours_required": ("hoursRequired", "hours_required"),
    "ethics_hours": ("ethicsHours", "ethics_hours"),
    "structured_hours": ("structuredHours", "structured_hours"),
}


@dataclass
class Requirements:
    """Hour requirements in force for a credential"""

    hours_required: Optional[float]
    ethics_hours: float
    structured_hours: float
    source: str  # "rule_pack" or "credential_defaults"
    rule_pack_id: Optional[int] = None
    rule_pack_version: Optional[int] = None


@dataclass
class ComplianceGap:
    """Results of comparing completed hours with one holding's requirements"""

    holding_id: Optional[int]
    credential_id: int
    credential_name: str
    is_primary: bool
    requirements_source: str
    hours_required: Optional[float]
    total_completed: float
    ethics_completed: float
    structured_completed: float
    total_needed: float
    ethics_needed: float
    structured_needed: float
    progress_percent: int
    days_until_deadline: Optional[int]
    compliant: bool
    urgency: str


def requirements_from_credential(credential: Credential) -> Requirements:
    return Requirements(
        hours_required=credential.hours_required,
        ethics_hours=credential.ethics_hours or 0.0,
        structured_hours=credential.structured_hours or 0.0,
        source="credential_defaults",
    )


def requirements_from_rules(
    credential: Credential,
    rules: Dict[str, Any],
    rule_pack_id: Optional[int] = None,
    rule_pack_version: Optional[int] = None,
) -> Requirements:
    """
    Requirements from a rule pack payload. Keys the pack does not carry (or
    carries with a non-numeric value) fall back to the credential columns.
    """
    defaults = requirements_from_credential(credential)
    values = {
        "hours_required": defaults.hours_required,
        "ethics_hours": defaults.ethics_hours,
        "structured_hours": defaults.structured_hours,
    }

    if not isinstance(rules, dict):
        logger.warning(f"Rule pack {rule_pack_id} payload is not an object; using credential defaults")
        return defaults

    for attr, keys in REQUIREMENT_KEYS.items():
        for key in keys:
            if key not in rules:
                continue
            raw = rules[key]
            if raw is None and attr == "hours_required":
                values[attr] = None
            elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
                values[attr] = float(raw)
            else:
                logger.warning(
                    f"Rule pack {rule_pack_id} has non-numeric {key}={raw!r}; using credential default"
                )
            break

    return Requirements(
        hours_required=values["hours_required"],
        ethics_hours=values["ethics_hours"] or 0.0,
        structured_hours=values["structured_hours"] or 0.0,
        source="rule_pack",
        rule_pack_id=rule_pack_id,
        rule_pack_version=rule_pack_version,
    )


def days_until(deadline: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days until the deadline, rounded up; server clock only"""
    if deadline is None:
        return None
    if now is None:
        now = utcnow()
    delta = to_naive_utc(deadline) - to_naive_utc(now)
    return math.ceil(delta.total_seconds() / 86400)


def classify_urgency(hours_needed: float, days_until_deadline: Optional[int]) -> str:
    if hours_needed <= 0:
        return "low"
    if days_until_deadline is not None and days_until_deadline < 30:
        return "critical"
    if days_until_deadline is not None and days_until_deadline < 90:
        return "high"
    return "medium"


def _allocation_index(allocations: Optional[Sequence[CPDAllocation]]) -> Dict[int, Dict[int, float]]:
    index: Dict[int, Dict[int, float]] = {}
    for allocation in allocations or []:
        index.setdefault(allocation.cpd_record_id, {})[allocation.holding_id] = allocation.hours
    return index


def hours_for_holding(
    record: CPDRecord, holding_id: Optional[int], allocation_index: Dict[int, Dict[int, float]]
) -> float:
    """
    Hours a record contributes to a holding. A record that has been split
    across holdings only counts with the share allocated to this holding.
    """
    split = allocation_index.get(record.id)
    if split is None:
        return record.hours or 0.0
    return split.get(holding_id, 0.0)


def compute_gap(
    holding: CredentialHolding,
    records: Sequence[CPDRecord],
    allocations: Optional[Sequence[CPDAllocation]] = None,
    requirements: Optional[Requirements] = None,
    now: Optional[datetime] = None,
) -> ComplianceGap:
    """
    Compute hours completed vs required for one holding.

    Only completed records count. The holding's self-reported baseline is
    added to the total. Progress is capped at 100 and "needed" values never
    go below zero.
    """
    if requirements is None:
        requirements = requirements_from_credential(holding.credential)

    index = _allocation_index(allocations)

    total = 0.0
    ethics = 0.0
    structured = 0.0
    for record in records:
        if not record.is_completed:
            continue
        hours = hours_for_holding(record, holding.id, index)
        total += hours
        if record.category == ETHICS_CATEGORY:
            ethics += hours
        if record.activity_type in STRUCTURED_ACTIVITY_TYPES:
            structured += hours

    total += holding.hours_completed or 0.0

    hours_required = requirements.hours_required
    total_needed = max(0.0, (hours_required or 0.0) - total)
    ethics_needed = max(0.0, requirements.ethics_hours - ethics)
    structured_needed = max(0.0, requirements.structured_hours - structured)

    if hours_required:
        progress_percent = min(100, round_half_up(total / hours_required * 100))
        progress_percent = max(0, progress_percent)
    else:
        progress_percent = 0

    days = days_until(holding.renewal_deadline, now)

    return ComplianceGap(
        holding_id=holding.id,
        credential_id=holding.credential_id,
        credential_name=holding.credential.name,
        is_primary=bool(holding.is_primary),
        requirements_source=requirements.source,
        hours_required=round2(hours_required) if hours_required is not None else None,
        total_completed=round2(total),
        ethics_completed=round2(ethics),
        structured_completed=round2(structured),
        total_needed=round2(total_needed),
        ethics_needed=round2(ethics_needed),
        structured_needed=round2(structured_needed),
        progress_percent=progress_percent,
        days_until_deadline=days,
        compliant=total_needed <= 0 and ethics_needed <= 0 and structured_needed <= 0,
        urgency=classify_urgency(total_needed, days),
    )
