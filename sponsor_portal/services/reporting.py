from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List

from ..schemas.worker import ChecklistItem, DashboardOverview, Reference, Worker
from .dates import bucket_counts, days_until, urgency_bucket

COMPLETED_STATUSES = {"verified", "not_applicable"}
RISK_LEVELS = ("critical", "high", "medium", "low")
FLAGGED_RISK_LEVELS = {"critical", "high"}
TOP_ALERT_LIMIT = 6
LEAVE_STATUSES = ("pending", "approved", "rejected", "cancelled")
REFERENCE_STATUSES = ("pending", "in_progress", "completed", "declined")

# (label, attribute) pairs shown on the employee "My Details" page.
PROFILE_FIELDS = (
    ("Name", "name"),
    ("Email", "email"),
    ("Phone", "phone"),
    ("Address", "address"),
    ("Postal code", "postal_code"),
    ("Date of birth", "date_of_birth"),
    ("Nationality", "nationality"),
    ("NI number", "ni_number"),
    ("Passport number", "passport_number"),
    ("Passport expiry", "passport_expiry"),
    ("Emergency contact", "emergency_contact_name"),
    ("Emergency contact phone", "emergency_contact_phone"),
    ("Employee ID", "employee_id"),
    ("Job title", "job_title"),
    ("Department", "department"),
    ("Work location", "work_location"),
    ("Start date", "start_date"),
    ("Visa expiry", "visa_expiry"),
    ("Route", "route"),
    ("Status", "status"),
)


def visa_expiry_report(workers: Iterable[Worker], now: datetime | None = None) -> Dict[str, Any]:
    """Rows for every worker with a visa expiry, soonest first, plus bucket totals."""

    rows: List[Dict[str, Any]] = []
    for worker in workers:
        if worker.visa_expiry is None:
            continue
        days_left = days_until(worker.visa_expiry, now=now)
        rows.append(
            {
                "id": worker.id,
                "name": worker.name,
                "department": worker.department,
                "status": worker.status,
                "visa_expiry": worker.visa_expiry,
                "days_left": days_left,
                "bucket": urgency_bucket(days_left),
            }
        )
    rows.sort(key=lambda row: row["visa_expiry"])
    return {
        "rows": rows,
        "counts": bucket_counts(row["days_left"] for row in rows),
        "total": len(rows),
    }


def dashboard_summary(overview: DashboardOverview) -> Dict[str, Any]:
    breakdown = overview.visa_breakdown
    alerts = [
        {**worker.model_dump(), "bucket": urgency_bucket(worker.days_left)}
        for worker in overview.expiring_workers[:TOP_ALERT_LIMIT]
    ]
    return {
        "expired": breakdown.expired,
        "expiring_90": breakdown.expired
        + breakdown.expiring_30
        + breakdown.expiring_60
        + breakdown.expiring_90,
        "top_alerts": alerts,
        "alert_total": len(overview.expiring_workers),
    }


def checklist_progress(items: Iterable[ChecklistItem]) -> Dict[str, Any]:
    """Document checklist totals; verified and not-applicable both count as done."""

    completed = uploaded = rejected = total = 0
    for item in items:
        total += 1
        status = (item.status or "").lower()
        if status in COMPLETED_STATUSES:
            completed += 1
        elif status == "uploaded":
            uploaded += 1
        elif status == "rejected":
            rejected += 1
    percent = round(completed / total * 100) if total else 0
    return {
        "total": total,
        "completed": completed,
        "uploaded": uploaded,
        "rejected": rejected,
        "not_started": total - completed - uploaded - rejected,
        "percent": percent,
    }


def risk_summary(workers: Iterable[Worker]) -> Dict[str, Any]:
    counts = {level: 0 for level in RISK_LEVELS}
    flagged: List[Worker] = []
    for worker in workers:
        level = (worker.risk_level or "low").lower()
        if level in counts:
            counts[level] += 1
        if level in FLAGGED_RISK_LEVELS:
            flagged.append(worker)
    return {"counts": counts, "flagged": flagged}


def leave_summary(leaves: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts = {status: 0 for status in LEAVE_STATUSES}
    for leave in leaves:
        status = str(leave.get("status") or "").lower()
        if status in counts:
            counts[status] += 1
    return counts


def reference_status(status: str | None) -> str:
    """Fold free-text referee statuses into one of ``REFERENCE_STATUSES``."""

    text = (status or "").lower()
    if "complete" in text:
        return "completed"
    if "decline" in text:
        return "declined"
    if "progress" in text:
        return "in_progress"
    return "pending"


def reference_summary(references: Iterable[Reference]) -> Dict[str, int]:
    counts = {status: 0 for status in REFERENCE_STATUSES}
    for reference in references:
        counts[reference_status(reference.status)] += 1
    counts["total"] = sum(counts.values())
    return counts


def profile_details(worker: Worker) -> Dict[str, Any]:
    """Label -> value for the fields a worker may review about themselves."""

    details: Dict[str, Any] = {}
    for label, attribute in PROFILE_FIELDS:
        value = getattr(worker, attribute, None)
        details[label] = "Not provided" if value in (None, "") else value
    return details


__all__ = [
    "checklist_progress",
    "dashboard_summary",
    "leave_summary",
    "profile_details",
    "reference_status",
    "reference_summary",
    "risk_summary",
    "visa_expiry_report",
]
