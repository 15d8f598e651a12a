"""
Aggregations behind the report endpoints.

Each function takes a queryset that has already been limited to what the
requester may see and only summarises it.
"""
from __future__ import annotations

from typing import Any, Dict, List

from django.db.models import Count, Q

from apps.hr.models import AttendanceStatus
from apps.sales.models import Lead
from apps.tasks.models import TaskStatus


def _percent(part: int, whole: int) -> int:
    return round(part * 100 / whole) if whole else 0


def _breakdown(queryset, field: str, label: str, empty: str = "") -> List[Dict[str, Any]]:
    rows = queryset.order_by().values(field).annotate(count=Count("id")).order_by("-count", field)
    return [{label: row[field] or empty, "count": row["count"]} for row in rows]


def sales_report(leads) -> Dict[str, Any]:
    totals = leads.aggregate(
        total=Count("id"),
        won=Count("id", filter=Q(status=Lead.Status.WON)),
        lost=Count("id", filter=Q(status=Lead.Status.LOST)),
    )
    per_owner = (
        leads.order_by()
        .values("owner_id", "owner__first_name", "owner__last_name")
        .annotate(
            total=Count("id"),
            won=Count("id", filter=Q(status=Lead.Status.WON)),
            lost=Count("id", filter=Q(status=Lead.Status.LOST)),
        )
        .order_by("-total", "owner_id")
    )
    return {
        "summary": {
            "total_leads": totals["total"],
            "won_leads": totals["won"],
            "lost_leads": totals["lost"],
            "active_leads": totals["total"] - totals["won"] - totals["lost"],
            "conversion_rate": _percent(totals["won"], totals["total"]),
        },
        "status_breakdown": _breakdown(leads, "status", "status"),
        "source_breakdown": _breakdown(leads, "source", "source", empty="Unknown"),
        "employee_breakdown": [
            {
                "employee_id": row["owner_id"],
                "name": f"{row['owner__first_name'] or ''} {row['owner__last_name'] or ''}".strip() or "Unassigned",
                "total": row["total"],
                "won": row["won"],
                "lost": row["lost"],
            }
            for row in per_owner
        ],
    }


def productivity_report(employees) -> Dict[str, Any]:
    rows = (
        employees.select_related("department")
        .annotate(
            total_tasks=Count("assigned_tasks", distinct=True),
            completed_tasks=Count(
                "assigned_tasks", filter=Q(assigned_tasks__status=TaskStatus.COMPLETED), distinct=True
            ),
            pending_tasks=Count(
                "assigned_tasks",
                filter=Q(assigned_tasks__status__in=[TaskStatus.PENDING, TaskStatus.IN_PROGRESS]),
                distinct=True,
            ),
            eod_count=Count("eod_reports", distinct=True),
            attendance_days=Count("attendances", distinct=True),
        )
        .order_by("first_name", "last_name", "id")
    )
    people = [
        {
            "employee_id": employee.pk,
            "name": employee.full_name,
            "department": employee.department.name if employee.department else "Unassigned",
            "total_tasks": employee.total_tasks,
            "completed_tasks": employee.completed_tasks,
            "pending_tasks": employee.pending_tasks,
            "eod_reports": employee.eod_count,
            "attendance_days": employee.attendance_days,
            "completion_rate": _percent(employee.completed_tasks, employee.total_tasks),
        }
        for employee in rows
    ]
    return {
        "summary": {
            "total_employees": len(people),
            "total_tasks": sum(p["total_tasks"] for p in people),
            "total_completed": sum(p["completed_tasks"] for p in people),
            "total_eods": sum(p["eod_reports"] for p in people),
            "avg_completion": round(sum(p["completion_rate"] for p in people) / len(people)) if people else 0,
        },
        "employees": people,
    }


def attendance_report(records) -> Dict[str, Any]:
    totals = records.aggregate(
        total=Count("id"),
        present=Count("id", filter=Q(status=AttendanceStatus.PRESENT)),
        absent=Count("id", filter=Q(status=AttendanceStatus.ABSENT)),
        leave=Count("id", filter=Q(status=AttendanceStatus.LEAVE)),
    )
    per_employee = (
        records.order_by()
        .values("employee_id", "employee__first_name", "employee__last_name")
        .annotate(
            total=Count("id"),
            present=Count("id", filter=Q(status=AttendanceStatus.PRESENT)),
            absent=Count("id", filter=Q(status=AttendanceStatus.ABSENT)),
            leave=Count("id", filter=Q(status=AttendanceStatus.LEAVE)),
        )
        .order_by("employee_id")
    )
    return {
        "summary": {
            "total_records": totals["total"],
            "present_count": totals["present"],
            "absent_count": totals["absent"],
            "leave_count": totals["leave"],
            "attendance_rate": _percent(totals["present"], totals["total"]),
        },
        "status_breakdown": _breakdown(records, "status", "status"),
        "employee_breakdown": [
            {
                "employee_id": row["employee_id"],
                "name": f"{row['employee__first_name']} {row['employee__last_name']}".strip(),
                "total": row["total"],
                "present": row["present"],
                "absent": row["absent"],
                "leave": row["leave"],
            }
            for row in per_employee
        ],
    }
