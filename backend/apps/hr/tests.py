from io import StringIO

from django.core.cache import cache
from django.core.management import CommandError, call_command
from django.test import TestCase
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.hr.models import ApprovalStatus, Employee, LeaveRequest
from apps.hr.services.hierarchy import EmployeeNode, HierarchyIndex, change_manager
from apps.security.exceptions import HierarchyCycleError
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role


def index_of(*edges, department_id=1):
    """Build an index from ``(employee_id, manager_id)`` pairs."""
    return HierarchyIndex(EmployeeNode(id=pk, manager_id=manager, department_id=department_id) for pk, manager in edges)


class HierarchyIndexTests(AccessFixtureMixin, TestCase):
    def test_transitive_reports_walks_every_level(self):
        index = index_of((1, None), (2, 1), (3, 2), (4, 3), (5, None))

        self.assertEqual(index.direct_reports(1), {2})
        self.assertEqual(index.transitive_reports(1), {2, 3, 4})
        self.assertEqual(index.team(1), {1, 2, 3, 4})
        self.assertEqual(index.team(4), {4})
        self.assertEqual(index.team(5), {5})

    def test_team_of_a_manager_contains_every_report_team(self):
        index = index_of((1, None), (2, 1), (3, 1), (4, 2), (5, 4), (6, 3))

        for employee_id in range(2, 7):
            manager_id = index.get(employee_id).manager_id
            self.assertTrue(index.team(employee_id) <= index.team(manager_id))

    def test_unknown_employee_has_only_themselves(self):
        index = index_of((1, None))
        self.assertEqual(index.team(99), {99})
        self.assertEqual(index.manager_chain(99), [])

    def test_manager_chain_is_nearest_first(self):
        index = index_of((1, None), (2, 1), (3, 2))
        self.assertEqual(index.manager_chain(3), [2, 1])

    def test_would_create_cycle(self):
        index = index_of((1, None), (2, 1), (3, 2))

        self.assertTrue(index.would_create_cycle(1, 1))
        self.assertTrue(index.would_create_cycle(1, 3))
        self.assertFalse(index.would_create_cycle(3, 1))
        self.assertFalse(index.would_create_cycle(2, None))

    def test_cycle_is_tolerated_and_reported_once(self):
        index = index_of((1, 3), (2, 1), (3, 2), (4, None))

        self.assertEqual(index.transitive_reports(1), {2, 3})
        self.assertEqual(index.transitive_reports(1), {2, 3})
        self.assertEqual(index.find_cycles(), [[1, 3, 2]])
        self.assertEqual(AuditLog.objects.filter(action="INTEGRITY_FAULT", entity_type="Employee").count(), 1)

    def test_persistent_cycle_is_reported_once_across_indexes(self):
        for _ in range(3):
            index_of((1, 3), (2, 1), (3, 2)).transitive_reports(1)

        self.assertEqual(AuditLog.objects.filter(action="INTEGRITY_FAULT", entity_type="Employee").count(), 1)

        cache.clear()
        index_of((1, 3), (2, 1), (3, 2)).transitive_reports(1)
        self.assertEqual(AuditLog.objects.filter(action="INTEGRITY_FAULT", entity_type="Employee").count(), 2)

    def test_department_members(self):
        index = HierarchyIndex([
            EmployeeNode(id=1, manager_id=None, department_id=10),
            EmployeeNode(id=2, manager_id=1, department_id=20),
            EmployeeNode(id=3, manager_id=1, department_id=10, is_active=False),
        ])
        self.assertEqual(index.department_members(10), {1, 3})
        self.assertEqual(index.department_members(None), set())

    def test_build_tree_nests_reports(self):
        index = index_of((1, None), (2, 1), (3, 1), (4, 2))

        forest = index.build_tree()

        self.assertEqual(len(forest), 1)
        root = forest[0]
        self.assertEqual(root["id"], 1)
        self.assertEqual([child["id"] for child in root["children"]], [2, 3])
        self.assertEqual(root["children"][0]["children"][0]["id"], 4)

    def test_build_tree_limited_to_members(self):
        index = index_of((1, None), (2, 1), (3, 1), (4, 2))

        forest = index.build_tree(members={2, 4})

        self.assertEqual([node["id"] for node in forest], [2])
        self.assertEqual([child["id"] for child in forest[0]["children"]], [4])

    def test_build_tree_opens_cycles_at_lowest_id(self):
        index = index_of((5, 7), (6, 5), (7, 6))

        forest = index.build_tree()

        self.assertEqual([node["id"] for node in forest], [5])
        self.assertEqual(forest[0]["children"][0]["id"], 6)
        self.assertEqual(forest[0]["children"][0]["children"][0]["id"], 7)

    def test_load_reads_database(self):
        department = make_department("SALES")
        boss = make_employee(department, login=False)
        report = make_employee(department, manager=boss, login=False)

        index = HierarchyIndex.load()

        self.assertIn(report.pk, index)
        self.assertEqual(index.team(boss.pk), {boss.pk, report.pk})


class ChangeManagerTests(TestCase):
    def setUp(self):
        self.department = make_department("SALES")
        self.top = make_employee(self.department, login=False)
        self.middle = make_employee(self.department, manager=self.top, login=False)
        self.bottom = make_employee(self.department, manager=self.middle, login=False)

    def test_rejects_own_report_as_manager(self):
        with self.assertRaises(HierarchyCycleError):
            change_manager(self.top, self.bottom)
        self.top.refresh_from_db()
        self.assertIsNone(self.top.manager_id)

    def test_rejects_self_as_manager(self):
        with self.assertRaises(HierarchyCycleError):
            change_manager(self.middle, self.middle)

    def test_moves_employee_and_records_audit(self):
        with self.captureOnCommitCallbacks(execute=True):
            change_manager(self.bottom, self.top)

        self.bottom.refresh_from_db()
        self.assertEqual(self.bottom.manager_id, self.top.pk)
        entry = AuditLog.objects.get(action="HIERARCHY_CHANGE")
        self.assertEqual(entry.entity_id, str(self.bottom.pk))
        self.assertEqual(entry.before_value, {"manager_id": self.middle.pk})

    def test_clearing_the_manager(self):
        change_manager(self.middle, None)
        self.middle.refresh_from_db()
        self.assertIsNone(self.middle.manager_id)


class CheckHierarchyCommandTests(AccessFixtureMixin, TestCase):
    def test_reports_cycle(self):
        department = make_department("OPS")
        first = make_employee(department, login=False)
        second = make_employee(department, manager=first, login=False)
        Employee.objects.filter(pk=first.pk).update(manager=second)

        out = StringIO()
        call_command("check_hierarchy", "--no-color", stdout=out)
        self.assertIn(f"{first.pk} -> {second.pk} -> {first.pk}", out.getvalue())

        with self.assertRaises(CommandError):
            call_command("check_hierarchy", "--fail", stdout=StringIO())

    def test_clean_hierarchy(self):
        out = StringIO()
        call_command("check_hierarchy", "--no-color", stdout=out)
        self.assertIn("Hierarchy OK", out.getvalue())


class HierarchyApiTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.sales = make_department("SALES")
        self.product = make_department("PRODUCT")
        self.admin_role = make_role("ADMIN", is_super_admin=True)
        self.bm_role = make_role("SALES_BM", {
            "employees": {"view": "team"},
            "leaves": {"view": "team", "approve": "team"},
        })
        self.bde_role = make_role("SALES_BDE", {
            "employees": {"view": "own"},
            "leaves": {"view": "own", "create": "own", "edit": "own", "delete": "own"},
        })

        self.admin = make_employee(self.sales, self.admin_role)
        self.bm = make_employee(self.sales, self.bm_role)
        self.bde = make_employee(self.sales, self.bde_role, manager=self.bm)
        self.other_bde = make_employee(self.sales, self.bde_role)
        self.developer = make_employee(self.product, self.bde_role)

    def test_manager_tree_is_their_team(self):
        self.client.force_authenticate(user=self.bm.user)
        response = self.client.get("/api/v1/hr/hierarchy-tree/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([node["id"] for node in response.data], [self.bm.pk])
        self.assertEqual([child["id"] for child in response.data[0]["children"]], [self.bde.pk])

    def test_tree_root_outside_scope_is_not_found(self):
        self.client.force_authenticate(user=self.bm.user)
        response = self.client.get(f"/api/v1/hr/hierarchy-tree/?root={self.developer.pk}")
        self.assertEqual(response.status_code, 404)

    def test_admin_sees_whole_forest(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.get("/api/v1/hr/hierarchy-tree/")

        roots = {node["id"] for node in response.data}
        self.assertEqual(roots, {self.admin.pk, self.bm.pk, self.other_bde.pk, self.developer.pk})

    def test_employee_list_is_scoped(self):
        self.client.force_authenticate(user=self.bde.user)
        response = self.client.get("/api/v1/hr/employees/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["id"] for row in response.data], [self.bde.pk])

    def test_set_manager_rejects_cycle(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.post(
            f"/api/v1/hr/employees/{self.bm.pk}/manager/", {"manager": self.bde.pk}, format="json"
        )
        self.assertEqual(response.status_code, 409)

    def test_set_manager_needs_manage(self):
        self.client.force_authenticate(user=self.bm.user)
        response = self.client.post(
            f"/api/v1/hr/employees/{self.bde.pk}/manager/", {"manager": None}, format="json"
        )
        self.assertEqual(response.status_code, 403)

    def test_leave_request_approved_by_manager(self):
        self.client.force_authenticate(user=self.bde.user)
        created = self.client.post(
            "/api/v1/hr/leaves/",
            {"leave_type": "ANNUAL", "start_date": "2026-11-02", "end_date": "2026-11-03"},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        leave_id = created.data["id"]

        own = self.client.post(f"/api/v1/hr/leaves/{leave_id}/approve/", {}, format="json")
        self.assertEqual(own.status_code, 403)

        self.client.force_authenticate(user=self.bm.user)
        decided = self.client.post(f"/api/v1/hr/leaves/{leave_id}/approve/", {"manager_note": "ok"}, format="json")
        self.assertEqual(decided.status_code, 200)
        self.assertEqual(decided.data["status"], ApprovalStatus.APPROVED)
        self.assertEqual(LeaveRequest.objects.get(pk=leave_id).approved_by_id, self.bm.pk)

    def test_leave_outside_team_is_hidden_from_manager(self):
        leave = LeaveRequest.objects.create(employee=self.other_bde, start_date="2026-11-02", end_date="2026-11-02")

        self.client.force_authenticate(user=self.bm.user)
        response = self.client.post(f"/api/v1/hr/leaves/{leave.pk}/approve/", {}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_leave_dates_validated(self):
        self.client.force_authenticate(user=self.bde.user)
        response = self.client.post(
            "/api/v1/hr/leaves/",
            {"leave_type": "SICK", "start_date": "2026-11-05", "end_date": "2026-11-03"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_requester_cannot_write_manager_note(self):
        self.client.force_authenticate(user=self.bde.user)
        created = self.client.post(
            "/api/v1/hr/leaves/",
            {"leave_type": "ANNUAL", "start_date": "2026-11-02", "end_date": "2026-11-02", "manager_note": "approved"},
            format="json",
        )
        self.assertEqual(created.status_code, 201)

        self.client.patch(f"/api/v1/hr/leaves/{created.data['id']}/", {"manager_note": "approved"}, format="json")

        self.assertEqual(LeaveRequest.objects.get(pk=created.data["id"]).manager_note, "")
