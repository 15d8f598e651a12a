from datetime import timedelta

from django.utils import timezone
from rest_framework.test import APITestCase

from apps.sales.models import Lead
from apps.tasks.models import Task, TaskStatus
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role

DASHBOARD_URL = "/api/v1/dashboard/"


class DashboardTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        sales = make_department("SALES")
        self.manager = make_employee(sales, make_role("SALES_BM", {
            "leads": {"view": "team"},
            "tasks": {"view": "team"},
        }))
        self.seller = make_employee(
            sales, make_role("SALES_BDE", {"leads": {"view": "own"}, "tasks": {"view": "own"}}), manager=self.manager
        )
        self.outsider = make_employee(sales, self.seller.role)
        self.tasks_only = make_employee(sales, make_role("PROD_DEV", {"tasks": {"view": "own"}}))

        now = timezone.now()
        Lead.objects.create(name="Acme", owner=self.seller, department=sales)
        Lead.objects.create(name="Globex", owner=self.outsider, department=sales)
        Task.objects.create(title="Due now", assignee=self.seller, due_date=now)
        Task.objects.create(title="Late", assignee=self.seller, due_date=now - timedelta(days=2))
        Task.objects.create(
            title="Late but done", assignee=self.seller, due_date=now - timedelta(days=2), status=TaskStatus.COMPLETED
        )
        Task.objects.create(title="Theirs", assignee=self.outsider, due_date=now)

    def get(self, employee, path):
        self.client.force_authenticate(user=employee.user)
        response = self.client.get(f"{DASHBOARD_URL}{path}")
        self.assertEqual(response.status_code, 200)
        return response.data

    def test_manager_stats_cover_team_only(self):
        data = self.get(self.manager, "stats/")

        self.assertEqual(data["global"], {"total_leads": 1, "tasks_due_today": 1, "overdue_tasks": 1})
        self.assertEqual(data["personal"], {"my_leads": 0, "my_tasks_due_today": 0})

    def test_personal_stats(self):
        data = self.get(self.seller, "stats/")
        self.assertEqual(data["personal"], {"my_leads": 1, "my_tasks_due_today": 1})

    def test_module_without_view_counts_zero(self):
        data = self.get(self.tasks_only, "stats/")
        self.assertEqual(data["global"]["total_leads"], 0)
        self.assertEqual(data["personal"]["my_leads"], 0)

    def test_recent_activity_is_scoped(self):
        entries = self.get(self.seller, "recent-activity/")

        self.assertEqual({entry["type"] for entry in entries}, {"LEAD", "TASK"})
        messages = {entry["message"] for entry in entries}
        self.assertIn("New lead created: Acme", messages)
        self.assertNotIn("New lead created: Globex", messages)
        self.assertNotIn("New task assigned: Theirs", messages)

    def test_requires_login(self):
        self.assertEqual(self.client.get(f"{DASHBOARD_URL}stats/").status_code, 401)
