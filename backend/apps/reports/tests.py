from datetime import date

from rest_framework.test import APITestCase

from apps.hr.models import Attendance, AttendanceStatus
from apps.sales.models import Lead
from apps.tasks.models import Task, TaskStatus
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role

REPORTS_URL = "/api/v1/reports/"


class ReportScopeTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        sales = make_department("SALES")
        self.manager = make_employee(sales, make_role("SALES_BM", {"reports": {"generate": "team"}}))
        seller_role = make_role("SALES_BDE", {"reports": {"generate": "own"}})
        self.seller = make_employee(sales, seller_role, manager=self.manager)
        self.colleague = make_employee(sales, seller_role, manager=self.manager)
        self.outsider = make_employee(sales, seller_role)
        self.admin = make_employee(make_department("ADMIN"), make_role("ADMIN"))
        self.no_reports = make_employee(sales, make_role("PROD_DEV", {"leads": {"view": "own"}}))

        for status, source in ((Lead.Status.WON, "Referral"), (Lead.Status.LOST, "Website"), (Lead.Status.NEW, "")):
            Lead.objects.create(name="Deal", owner=self.seller, department=sales, status=status, source=source)
        for _ in range(2):
            Lead.objects.create(name="Deal", owner=self.colleague, department=sales)
        for _ in range(4):
            Lead.objects.create(name="Elsewhere", owner=self.outsider, department=sales, status=Lead.Status.WON)

    def report(self, employee, name, query=""):
        self.client.force_authenticate(user=employee.user)
        return self.client.get(f"{REPORTS_URL}{name}/{query}")

    def test_sales_report_follows_team_scope(self):
        response = self.report(self.manager, "sales")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["summary"], {
            "total_leads": 5,
            "won_leads": 1,
            "lost_leads": 1,
            "active_leads": 3,
            "conversion_rate": 20,
        })
        owners = {row["employee_id"] for row in response.data["employee_breakdown"]}
        self.assertEqual(owners, {self.seller.pk, self.colleague.pk})

    def test_sales_report_for_own_scope(self):
        data = self.report(self.seller, "sales").data

        self.assertEqual(data["summary"]["total_leads"], 3)
        self.assertIn({"source": "Unknown", "count": 1}, data["source_breakdown"])

    def test_admin_report_covers_everyone(self):
        self.assertEqual(self.report(self.admin, "sales").data["summary"]["total_leads"], 9)

    def test_filter_cannot_widen_report(self):
        data = self.report(self.manager, "sales", f"?employee_id={self.outsider.pk}").data
        self.assertEqual(data["summary"]["total_leads"], 5)

    def test_report_needs_generate(self):
        self.assertEqual(self.report(self.no_reports, "sales").status_code, 403)

    def test_productivity_report(self):
        Task.objects.create(title="Call", assignee=self.seller, status=TaskStatus.COMPLETED)
        Task.objects.create(title="Email", assignee=self.seller)
        Task.objects.create(title="Other", assignee=self.outsider)

        data = self.report(self.manager, "productivity").data

        self.assertEqual(data["summary"]["total_employees"], 3)
        self.assertEqual(data["summary"]["total_tasks"], 2)
        seller_row = next(row for row in data["employees"] if row["employee_id"] == self.seller.pk)
        self.assertEqual((seller_row["completed_tasks"], seller_row["pending_tasks"]), (1, 1))
        self.assertEqual(seller_row["completion_rate"], 50)

    def test_attendance_report_with_period(self):
        Attendance.objects.create(employee=self.seller, date=date(2026, 3, 2), status=AttendanceStatus.PRESENT)
        Attendance.objects.create(employee=self.seller, date=date(2026, 3, 3), status=AttendanceStatus.ABSENT)
        Attendance.objects.create(employee=self.outsider, date=date(2026, 3, 2), status=AttendanceStatus.PRESENT)

        data = self.report(self.manager, "attendance").data
        march_third = self.report(self.manager, "attendance", "?date_from=2026-03-03").data

        self.assertEqual(data["summary"]["total_records"], 2)
        self.assertEqual(data["summary"]["attendance_rate"], 50)
        self.assertEqual(march_third["summary"]["absent_count"], 1)
        self.assertEqual(march_third["summary"]["total_records"], 1)

    def test_reversed_period_rejected(self):
        response = self.report(self.manager, "attendance", "?date_from=2026-03-05&date_to=2026-03-01")
        self.assertEqual(response.status_code, 400)
