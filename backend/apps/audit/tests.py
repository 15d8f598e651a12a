from unittest import mock

from django.test import TestCase
from rest_framework.test import APITestCase

from apps.audit.models import ActivityLog, AuditLog
from apps.audit.utils import log_audit_event
from shared.event_bus import MANAGER_CHANGED, event_bus
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role

ACTIVITY_URL = "/api/v1/activity/"


class AuditLogTests(TestCase):
    def test_log_audit_event_stores_values(self):
        entry = log_audit_event(
            user=None,
            action="PERMISSION_CHANGE",
            entity_type="Role",
            entity_id=7,
            before=["leads:view:own"],
            after=["leads:view:team"],
        )
        self.assertEqual(entry.entity_id, "7")
        self.assertEqual(entry.after_value, ["leads:view:team"])

    def test_handler_failure_does_not_reach_publisher(self):
        with mock.patch("apps.audit.services.event_handlers.log_audit_event", side_effect=RuntimeError("db down")):
            event_bus.publish(MANAGER_CHANGED, employee_id=1, previous_manager_id=None, manager_id=2)
        self.assertFalse(AuditLog.objects.exists())


class ActivityFeedTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        sales = make_department("SALES")
        self.manager = make_employee(sales, make_role("SALES_BM", {"reports": {"generate": "team"}}))
        self.report = make_employee(sales, make_role("SALES_BDE", {"reports": {"generate": "own"}}), manager=self.manager)
        self.outsider = make_employee(sales, self.report.role)
        self.no_reports = make_employee(sales, make_role("PROD_DEV", {"leads": {"view": "own"}}))
        for employee in (self.manager, self.report, self.outsider):
            ActivityLog.objects.create(employee=employee, module="leads", action="created", entity_id=str(employee.pk))
        ActivityLog.objects.create(employee=self.report, module="tasks", action="created", entity_id="99")

    def feed(self, employee, query=""):
        self.client.force_authenticate(user=employee.user)
        return self.client.get(ACTIVITY_URL + query)

    def test_feed_is_scoped_and_paginated(self):
        response = self.feed(self.manager)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 3)
        self.assertEqual({row["employee"] for row in response.data["results"]}, {self.manager.pk, self.report.pk})

    def test_own_feed(self):
        response = self.feed(self.report)
        self.assertEqual({row["employee"] for row in response.data["results"]}, {self.report.pk})

    def test_filters(self):
        response = self.feed(self.manager, "?module=tasks")
        self.assertEqual([row["entity_id"] for row in response.data["results"]], ["99"])

    def test_limit(self):
        response = self.feed(self.manager, "?limit=1")
        self.assertEqual(len(response.data["results"]), 1)

    def test_requires_reports_generate(self):
        self.assertEqual(self.feed(self.no_reports).status_code, 403)
