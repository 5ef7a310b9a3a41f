"""Guarded portal pages.

Every route here sits behind :func:`require_route_access`, so by the time a
handler runs the visitor is signed in and allowed on the page. Backend
failures while loading page data are shown on the page; they never redirect.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Awaitable, TypeVar

from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from ..core.jinja import get_templates
from ..core.roles import STAFF_ROLES, visible_nav
from ..deps.auth import require_roles, require_route_access
from ..schemas.calendar import CalendarEvents, HolidayCreate
from ..services.backend import BackendError
from ..services.dates import (
    InvalidDateError,
    build_month_grid,
    calendar_day_stats,
    days_until,
    events_on,
    parse_iso_date,
    urgency_bucket,
)
from ..services.reporting import (
    checklist_progress,
    dashboard_summary,
    leave_summary,
    profile_details,
    reference_status,
    reference_summary,
    risk_summary,
    visa_expiry_report,
)
from ..services.session_gate import SessionGate

logger = logging.getLogger(__name__)
templates = get_templates()

router = APIRouter(dependencies=[Depends(require_route_access)])

T = TypeVar("T")


async def _fetch(call: Awaitable[T], default: T) -> tuple[T, str]:
    """Await a backend call, returning ``(default, message)`` if it fails."""

    try:
        return await call, ""
    except BackendError as exc:
        logger.warning("page.fetch_failed", extra={"extra_data": {"reason": exc.message}})
        return default, exc.message


def _render(
    request: Request,
    gate: SessionGate,
    template: str,
    title: str,
    *,
    status_code: int = status.HTTP_200_OK,
    **context: Any,
):
    identity = gate.identity
    context.update(
        {
            "title": title,
            "identity": identity,
            "nav": visible_nav(identity.role) if identity else [],
            "current_path": request.url.path,
        }
    )
    context.setdefault("error", "")
    return templates.TemplateResponse(request, template, context, status_code=status_code)


def _month_from(year: int | None, month: int | None) -> tuple[int, int]:
    today = date.today()
    year = year or today.year
    month = month or today.month
    if not 1 <= month <= 12:
        raise InvalidDateError(f"Invalid month: {year}-{month}")
    return year, month


# ---------- Staff pages ----------


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard_page(request: Request, gate: SessionGate = Depends(require_route_access)):
    overview, error = await _fetch(gate.backend.dashboard_overview(gate.credential), None)
    summary = dashboard_summary(overview) if overview else None
    return _render(
        request, gate, "dashboard.html", "Dashboard", overview=overview, summary=summary, error=error
    )


@router.get("/workers", response_class=HTMLResponse)
async def workers_page(request: Request, gate: SessionGate = Depends(require_route_access)):
    workers, error = await _fetch(gate.backend.list_workers(gate.credential), [])
    rows = []
    for worker in workers:
        days_left = days_until(worker.visa_expiry)
        rows.append(
            {
                "id": worker.id,
                "name": worker.name,
                "job_title": worker.job_title,
                "department": worker.department,
                "status": worker.status,
                "visa_expiry": worker.visa_expiry,
                "days_left": days_left,
                "bucket": urgency_bucket(days_left) if worker.visa_expiry else None,
            }
        )
    return _render(
        request,
        gate,
        "page.html",
        "Employees",
        columns=["name", "job_title", "department", "status", "visa_expiry", "days_left"],
        rows=rows,
        error=error,
    )


@router.get("/workers/visa-expiry", response_class=HTMLResponse)
async def visa_expiry_page(request: Request, gate: SessionGate = Depends(require_route_access)):
    workers, error = await _fetch(gate.backend.list_workers(gate.credential), [])
    report = visa_expiry_report(workers)
    return _render(
        request,
        gate,
        "page.html",
        "Visa Expiry",
        summary={bucket.label: count for bucket, count in report["counts"].items()},
        columns=["name", "department", "visa_expiry", "days_left", "bucket"],
        rows=report["rows"],
        report=report,
        error=error,
    )


@router.get("/workers/{worker_id}", response_class=HTMLResponse)
async def worker_detail_page(
    worker_id: str, request: Request, gate: SessionGate = Depends(require_route_access)
):
    backend = gate.backend
    worker, error = await _fetch(backend.get_worker(gate.credential, worker_id), None)
    checklist, checklist_error = await _fetch(backend.worker_checklist(gate.credential, worker_id), [])
    progress = checklist_progress(checklist)
    days_left = days_until(worker.visa_expiry) if worker else None
    return _render(
        request,
        gate,
        "page.html",
        worker.name if worker else "Employee",
        worker=worker,
        summary={
            "Visa": urgency_bucket(days_left).label if worker and worker.visa_expiry else "No visa on file",
            "Documents complete": f"{progress['percent']}%",
            "Awaiting review": progress["uploaded"],
            "Rejected": progress["rejected"],
        },
        columns=["document_name", "status"],
        rows=checklist,
        progress=progress,
        error=error or checklist_error,
    )


@router.get("/leave", response_class=HTMLResponse)
async def leave_page(
    request: Request,
    status_filter: str = Query("pending"),
    gate: SessionGate = Depends(require_route_access),
):
    leaves, error = await _fetch(gate.backend.list_leave(gate.credential, status_filter or None), [])
    return _render(
        request,
        gate,
        "page.html",
        "Leave",
        columns=["worker_name", "leave_type", "start_date", "end_date", "days", "status"],
        rows=leaves,
        status_filter=status_filter,
        error=error,
    )


async def _calendar_context(
    request: Request, gate: SessionGate, year: int, month: int, day: str | None
) -> dict[str, Any]:
    events, error = await _fetch(
        gate.backend.calendar_events(gate.credential, year, month), CalendarEvents()
    )
    selected = parse_iso_date(day) if day else None
    return {
        "year": year,
        "month": month,
        "grid": build_month_grid(year, month),
        "day_stats": calendar_day_stats(events, year, month),
        "events": events,
        "selected": selected,
        "selected_events": events_on(events, selected) if selected else None,
        "can_manage_holidays": gate.has_role(*STAFF_ROLES),
        "error": error,
    }


@router.get("/calendar", response_class=HTMLResponse)
async def calendar_page(
    request: Request,
    year: int | None = Query(None),
    month: int | None = Query(None),
    day: str | None = Query(None),
    gate: SessionGate = Depends(require_route_access),
):
    year, month = _month_from(year, month)
    context = await _calendar_context(request, gate, year, month, day)
    return _render(request, gate, "calendar.html", "Calendar", **context)


@router.post("/calendar/holidays", response_class=HTMLResponse)
async def add_holiday(
    request: Request,
    name: str = Form(""),
    holiday_date: str = Form(..., alias="date"),
    description: str = Form(""),
    gate: SessionGate = Depends(require_roles(*STAFF_ROLES)),
):
    day = parse_iso_date(holiday_date)
    if not name.strip():
        context = await _calendar_context(request, gate, day.year, day.month, day.isoformat())
        context["error"] = "Enter a name for the holiday"
        return _render(
            request,
            gate,
            "calendar.html",
            "Calendar",
            status_code=status.HTTP_400_BAD_REQUEST,
            **context,
        )
    holiday = HolidayCreate(name=name.strip(), date=day, description=description.strip() or None)
    try:
        await gate.backend.add_holiday(gate.credential, holiday)
    except BackendError as exc:
        context = await _calendar_context(request, gate, day.year, day.month, day.isoformat())
        context["error"] = exc.message
        return _render(request, gate, "calendar.html", "Calendar", **context)
    return RedirectResponse(
        url=f"/calendar?year={day.year}&month={day.month}&day={day.isoformat()}",
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/organisation", response_class=HTMLResponse)
async def organisation_page(request: Request, gate: SessionGate = Depends(require_route_access)):
    overview, error = await _fetch(gate.backend.dashboard_overview(gate.credential), None)
    summary = {}
    if overview:
        summary = {
            "Employees": overview.total_employees,
            "Sponsored": overview.sponsored,
            "CoS allocated": overview.cos_allocated,
            "CoS used": overview.cos_used,
            "CoS available": overview.cos_available,
        }
    return _render(
        request,
        gate,
        "page.html",
        "Organisation",
        summary=summary,
        organisation_id=gate.identity.organisation_id if gate.identity else None,
        error=error,
    )


@router.get("/documents", response_class=HTMLResponse)
async def documents_page(request: Request, gate: SessionGate = Depends(require_route_access)):
    backend = gate.backend
    workers, error = await _fetch(backend.list_workers(gate.credential), [])
    compliance, compliance_error = await _fetch(backend.compliance_summary(gate.credential), {})
    rows = []
    for worker in workers:
        entry = compliance.get(worker.id) or {}
        rows.append(
            {
                "name": worker.name,
                "department": worker.department,
                "total": entry.get("total", 0),
                "verified": entry.get("verified", 0),
                "uploaded": entry.get("uploaded", 0),
                "rejected": entry.get("rejected", 0),
            }
        )
    return _render(
        request,
        gate,
        "page.html",
        "Documents",
        columns=["name", "department", "total", "verified", "uploaded", "rejected"],
        rows=rows,
        error=error or compliance_error,
    )


@router.get("/reports", response_class=HTMLResponse)
async def reports_page(request: Request, gate: SessionGate = Depends(require_route_access)):
    overview, error = await _fetch(gate.backend.dashboard_overview(gate.credential), None)
    summary = overview.visa_breakdown.model_dump() if overview else {}
    return _render(request, gate, "page.html", "Reports", summary=summary, error=error)


@router.get("/risk", response_class=HTMLResponse)
async def risk_page(request: Request, gate: SessionGate = Depends(require_route_access)):
    workers, error = await _fetch(gate.backend.list_workers(gate.credential), [])
    risk = risk_summary(workers)
    return _render(
        request,
        gate,
        "page.html",
        "Risk Monitor",
        summary=risk["counts"],
        columns=["name", "job_title", "department", "risk_level", "visa_expiry"],
        rows=risk["flagged"],
        error=error,
    )


@router.get("/settings", response_class=HTMLResponse)
async def settings_page(request: Request, gate: SessionGate = Depends(require_route_access)):
    users, error = await _fetch(gate.backend.list_users(gate.credential), [])
    return _render(
        request,
        gate,
        "page.html",
        "Settings",
        columns=["full_name", "email", "role", "is_active"],
        rows=users,
        error=error,
    )


# ---------- Employee portal ----------


@router.get("/portal", response_class=HTMLResponse)
async def portal_home(request: Request, gate: SessionGate = Depends(require_route_access)):
    backend = gate.backend
    profile, error = await _fetch(backend.portal_me(gate.credential), None)
    checklist, checklist_error = await _fetch(backend.portal_checklist(gate.credential), [])
    progress = checklist_progress(checklist)
    days_left = days_until(profile.visa_expiry) if profile else None
    summary = {
        "Documents complete": f"{progress['percent']}%",
        "Awaiting review": progress["uploaded"],
        "Rejected": progress["rejected"],
    }
    if profile and profile.visa_expiry:
        summary["Visa"] = urgency_bucket(days_left).label
    return _render(
        request,
        gate,
        "page.html",
        "My Dashboard",
        profile=profile,
        days_left=days_left,
        summary=summary,
        progress=progress,
        error=error or checklist_error,
    )


@router.get("/portal/documents", response_class=HTMLResponse)
async def portal_documents(request: Request, gate: SessionGate = Depends(require_route_access)):
    checklist, error = await _fetch(gate.backend.portal_checklist(gate.credential), [])
    progress = checklist_progress(checklist)
    return _render(
        request,
        gate,
        "page.html",
        "My Documents",
        summary={
            "Verified / N/A": progress["completed"],
            "Awaiting review": progress["uploaded"],
            "Rejected": progress["rejected"],
            "Not started": progress["not_started"],
        },
        columns=["document_name", "status"],
        rows=checklist,
        progress=progress,
        error=error,
    )


@router.get("/portal/calendar", response_class=HTMLResponse)
async def portal_calendar(
    request: Request,
    year: int | None = Query(None),
    month: int | None = Query(None),
    day: str | None = Query(None),
    gate: SessionGate = Depends(require_route_access),
):
    year, month = _month_from(year, month)
    context = await _calendar_context(request, gate, year, month, day)
    context["can_manage_holidays"] = False
    return _render(request, gate, "calendar.html", "Calendar", **context)


@router.get("/portal/leave", response_class=HTMLResponse)
async def portal_leave(request: Request, gate: SessionGate = Depends(require_route_access)):
    leaves, error = await _fetch(gate.backend.my_leave(gate.credential), [])
    return _render(
        request,
        gate,
        "page.html",
        "My Leave",
        summary=leave_summary(leaves),
        columns=["leave_type", "start_date", "end_date", "days", "status", "rejection_reason"],
        rows=leaves,
        error=error,
    )


@router.get("/portal/details", response_class=HTMLResponse)
async def portal_details(request: Request, gate: SessionGate = Depends(require_route_access)):
    profile, error = await _fetch(gate.backend.portal_me(gate.credential), None)
    return _render(
        request,
        gate,
        "page.html",
        "My Details",
        summary=profile_details(profile) if profile else {},
        error=error,
    )


@router.get("/portal/bgverify", response_class=HTMLResponse)
async def portal_bgverify(request: Request, gate: SessionGate = Depends(require_route_access)):
    backend = gate.backend
    profile, error = await _fetch(backend.portal_me(gate.credential), None)
    references = []
    if profile:
        references, error = await _fetch(backend.worker_references(gate.credential, profile.id), [])
    rows = [
        {
            "referee_name": reference.referee_name,
            "referee_email": reference.referee_email,
            "status": reference_status(reference.status),
        }
        for reference in references
    ]
    return _render(
        request,
        gate,
        "page.html",
        "Background Verification",
        summary=reference_summary(references),
        columns=["referee_name", "referee_email", "status"],
        rows=rows,
        error=error,
    )
