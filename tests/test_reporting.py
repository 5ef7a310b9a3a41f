import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sponsor_portal.schemas.worker import ChecklistItem, DashboardOverview, Reference, Worker
from sponsor_portal.services.dates import UrgencyBucket
from sponsor_portal.services.reporting import (
    checklist_progress,
    dashboard_summary,
    leave_summary,
    profile_details,
    reference_status,
    reference_summary,
    risk_summary,
    visa_expiry_report,
)

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=ZoneInfo("Europe/London"))


def _workers():
    return [
        Worker(id="w1", name="Amara Okafor", visa_expiry="2025-05-20", risk_level="low"),
        Worker(id="w2", name="Tom Reid", visa_expiry="2025-03-01", risk_level="critical"),
        Worker(id="w3", name="Li Wei", visa_expiry=None, risk_level="High"),
        Worker(id="w4", name="Sam Hill", visa_expiry="2025-03-25", risk_level="medium"),
        Worker(id="w5", name="Ana Costa", visa_expiry="2026-01-01", risk_level="unknown"),
    ]


def test_visa_expiry_report_sorts_and_buckets():
    report = visa_expiry_report(_workers(), now=NOW)

    assert [row["id"] for row in report["rows"]] == ["w2", "w4", "w1", "w5"]
    assert report["total"] == 4
    assert sum(report["counts"].values()) == report["total"]
    assert report["rows"][0]["bucket"] is UrgencyBucket.EXPIRED
    assert report["rows"][0]["days_left"] < 0
    assert report["rows"][1]["bucket"] is UrgencyBucket.CRITICAL
    assert report["rows"][2]["bucket"] is UrgencyBucket.MONITOR
    assert report["counts"][UrgencyBucket.OK] == 1
    assert report["counts"][UrgencyBucket.WARNING] == 0


def test_checklist_progress_counts_not_applicable_as_done():
    items = [
        ChecklistItem(id="1", status="verified"),
        ChecklistItem(id="2", status="not_applicable"),
        ChecklistItem(id="3", status="uploaded"),
        ChecklistItem(id="4", status="rejected"),
        ChecklistItem(id="5"),
        ChecklistItem(id="6", status="not_started"),
    ]

    progress = checklist_progress(items)

    assert progress == {
        "total": 6,
        "completed": 2,
        "uploaded": 1,
        "rejected": 1,
        "not_started": 2,
        "percent": 33,
    }


def test_checklist_progress_empty_is_zero_percent():
    assert checklist_progress([])["percent"] == 0


def test_risk_summary_flags_critical_and_high():
    summary = risk_summary(_workers())

    assert summary["counts"] == {"critical": 1, "high": 1, "medium": 1, "low": 1}
    assert [worker.id for worker in summary["flagged"]] == ["w2", "w3"]


def test_dashboard_summary_limits_alerts():
    overview = DashboardOverview.model_validate(
        {
            "total_employees": 40,
            "visa_breakdown": {"expired": 2, "expiring_30": 3, "expiring_60": 1, "expiring_90": 4, "valid": 30},
            "expiring_workers": [
                {"id": f"w{i}", "name": f"Worker {i}", "visa_expiry": "2025-04-01", "days_left": i * 10 - 5}
                for i in range(8)
            ],
        }
    )

    summary = dashboard_summary(overview)

    assert summary["expired"] == 2
    assert summary["expiring_90"] == 10
    assert summary["alert_total"] == 8
    assert len(summary["top_alerts"]) == 6
    assert summary["top_alerts"][0]["bucket"] is UrgencyBucket.EXPIRED
    assert summary["top_alerts"][1]["bucket"] is UrgencyBucket.CRITICAL


def test_leave_summary_counts_known_statuses():
    leaves = [{"status": "Approved"}, {"status": "pending"}, {"status": "pending"}, {"status": None}]
    assert leave_summary(leaves) == {"pending": 2, "approved": 1, "rejected": 0, "cancelled": 0}


def test_reference_status_folds_free_text():
    assert reference_status("Reference Completed") == "completed"
    assert reference_status("DECLINED by referee") == "declined"
    assert reference_status("in progress") == "in_progress"
    assert reference_status("sent") == "pending"
    assert reference_status(None) == "pending"


def test_reference_summary_totals():
    references = [
        Reference(id="r1", referee_name="A", status="completed"),
        Reference(id="r2", referee_name="B", status="declined"),
        Reference(id="r3", referee_name="C"),
    ]
    assert reference_summary(references) == {
        "pending": 1,
        "in_progress": 0,
        "completed": 1,
        "declined": 1,
        "total": 3,
    }


def test_profile_details_reads_extra_fields():
    worker = Worker(id="w9", name="Ana Costa", nationality="Portuguese", job_title="Chef")
    details = profile_details(worker)
    assert details["Name"] == "Ana Costa"
    assert details["Nationality"] == "Portuguese"
    assert details["Job title"] == "Chef"
    assert details["Phone"] == "Not provided"
