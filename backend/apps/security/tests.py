from django.test import SimpleTestCase, TestCase
from rest_framework.test import APITestCase

from apps.hr.models import Employee
from apps.hr.services.hierarchy import EmployeeNode, HierarchyIndex
from apps.sales.models import Lead
from apps.security.exceptions import Forbidden
from apps.security.requester import Requester
from apps.security.scopes import Scope, TargetResource, VisibilityDescriptor, VisibilityKind, narrowest
from apps.security.services.access import DenyReason, authorize, require
from apps.security.services.query_scoping import apply_scope
from apps.security.services.scope_resolver import resolve_scope
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role


class ScopeTests(SimpleTestCase):
    def test_parse_accepts_aliases_and_case(self):
        self.assertEqual(Scope.parse("TEAM"), Scope.TEAM)
        self.assertEqual(Scope.parse("assigned"), Scope.OWN)
        self.assertEqual(Scope.parse(Scope.ALL), Scope.ALL)
        self.assertIsNone(Scope.parse("company"))
        self.assertIsNone(Scope.parse(None))

    def test_narrowest(self):
        self.assertEqual(narrowest([Scope.ALL, Scope.TEAM, Scope.DEPARTMENT]), Scope.TEAM)
        self.assertIsNone(narrowest([]))

    def test_department_descriptor_matches_department_or_own_rows(self):
        descriptor = VisibilityDescriptor.for_department(7, {1, 2}, requester_id=1)

        self.assertTrue(descriptor.includes(TargetResource(frozenset({99}), frozenset({7}))))
        self.assertTrue(descriptor.includes(TargetResource(frozenset({1}), frozenset({8}))))
        self.assertFalse(descriptor.includes(TargetResource(frozenset({2}), frozenset({8}))))
        # Without a department column the owner decides.
        self.assertTrue(descriptor.includes(TargetResource(frozenset({2}))))


class ScopeResolverTests(SimpleTestCase):
    def setUp(self):
        self.index = HierarchyIndex([
            EmployeeNode(id=1, manager_id=None, department_id=10),
            EmployeeNode(id=2, manager_id=1, department_id=10),
            EmployeeNode(id=3, manager_id=2, department_id=10),
            EmployeeNode(id=4, manager_id=None, department_id=10),
            EmployeeNode(id=5, manager_id=None, department_id=20),
        ])
        self.manager = Requester(user_id=11, employee_id=1, department_id=10, role_id=1, role_is_active=True)

    def test_own(self):
        descriptor = resolve_scope(self.manager, Scope.OWN, hierarchy=self.index)
        self.assertEqual(descriptor.employee_ids, {1})

    def test_team_is_recursive(self):
        descriptor = resolve_scope(self.manager, "team", hierarchy=self.index)
        self.assertEqual(descriptor.kind, VisibilityKind.EMPLOYEES)
        self.assertEqual(descriptor.employee_ids, {1, 2, 3})

    def test_department(self):
        descriptor = resolve_scope(self.manager, Scope.DEPARTMENT, hierarchy=self.index)
        self.assertEqual(descriptor.department_id, 10)
        self.assertEqual(descriptor.employee_ids, {1, 2, 3, 4})

    def test_all_is_unrestricted(self):
        self.assertTrue(resolve_scope(self.manager, Scope.ALL, hierarchy=self.index).is_unrestricted)

    def test_unknown_scope_falls_back_to_own(self):
        descriptor = resolve_scope(self.manager, "everything", hierarchy=self.index)
        self.assertEqual(descriptor.employee_ids, {1})

    def test_department_without_department_is_own(self):
        requester = Requester(user_id=12, employee_id=4, department_id=None, role_id=1, role_is_active=True)
        descriptor = resolve_scope(requester, Scope.DEPARTMENT, hierarchy=self.index)
        self.assertEqual(descriptor.employee_ids, {4})

    def test_scopes_widen_monotonically(self):
        own = resolve_scope(self.manager, Scope.OWN, hierarchy=self.index).employee_ids
        team = resolve_scope(self.manager, Scope.TEAM, hierarchy=self.index).employee_ids
        department = resolve_scope(self.manager, Scope.DEPARTMENT, hierarchy=self.index).employee_ids
        self.assertTrue(own <= team <= department)


class AuthorizeTests(AccessFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.sales = make_department("SALES")
        self.seller_role = make_role("SALES_BDE", {"leads": {"view": "own", "edit": "own"}})
        self.seller = make_employee(self.sales, self.seller_role)
        self.colleague = make_employee(self.sales, self.seller_role)

    def test_allows_within_scope(self):
        decision = authorize(self.seller.user, "leads", "view", target=self.seller.pk)
        self.assertTrue(decision)
        self.assertEqual(decision.scope, Scope.OWN)

    def test_denies_target_outside_scope(self):
        decision = authorize(self.seller, "leads", "edit", target=self.colleague.pk)
        self.assertFalse(decision)
        self.assertEqual(decision.reason, DenyReason.OUT_OF_SCOPE)

    def test_denies_missing_capability(self):
        decision = authorize(self.seller, "leads", "delete")
        self.assertEqual(decision.reason, DenyReason.NO_CAPABILITY)

    def test_admin_role_bypasses_catalog(self):
        admin = make_employee(self.sales, make_role("ADMIN"))
        decision = authorize(admin, "projects", "delete", target=self.colleague.pk)
        self.assertTrue(decision)
        self.assertTrue(decision.visibility.is_unrestricted)

    def test_unassigned_role_is_denied_everything(self):
        pending = make_employee(self.sales, make_role("UNASSIGNED", {"leads": {"view": "all"}}))
        self.assertEqual(authorize(pending, "leads", "view").reason, DenyReason.UNASSIGNED_ROLE)

    def test_employee_without_role_is_denied(self):
        nobody = make_employee(self.sales)
        self.assertEqual(authorize(nobody, "leads", "view").reason, DenyReason.NO_ROLE)

    def test_inactive_employee_is_denied(self):
        Employee.objects.filter(pk=self.seller.pk).update(is_active=False)
        self.seller.refresh_from_db()
        self.assertEqual(authorize(self.seller, "leads", "view").reason, DenyReason.INACTIVE_EMPLOYEE)

    def test_inactive_role_is_denied(self):
        self.seller_role.is_active = False
        self.seller_role.save()
        self.seller.refresh_from_db()
        self.assertEqual(authorize(self.seller, "leads", "view").reason, DenyReason.INACTIVE_ROLE)

    def test_user_without_employee_is_denied(self):
        from django.contrib.auth import get_user_model

        user = get_user_model().objects.create_user(username="loose", password="x-pass-123")
        self.assertEqual(authorize(user, "leads", "view").reason, DenyReason.NO_EMPLOYEE)

    def test_anonymous_is_unauthenticated(self):
        self.assertEqual(authorize(None, "leads", "view").reason, DenyReason.UNAUTHENTICATED)

    def test_require_raises_generic_forbidden(self):
        with self.assertRaises(Forbidden) as raised:
            require(self.seller, "leads", "delete")
        self.assertEqual(str(raised.exception.detail), Forbidden.default_detail)


class ApplyScopeTests(AccessFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.sales = make_department("SALES")
        self.product = make_department("PRODUCT")
        self.manager = make_employee(self.sales, login=False)
        self.report = make_employee(self.sales, manager=self.manager, login=False)
        self.deep_report = make_employee(self.sales, manager=self.report, login=False)
        self.outsider = make_employee(self.sales, login=False)
        self.developer = make_employee(self.product, login=False)
        for owner in (self.manager, self.report, self.deep_report, self.outsider, self.developer):
            Lead.objects.create(name=f"Lead of {owner.pk}", owner=owner, department=owner.department)
        self.index = HierarchyIndex.load()

    def owners(self, queryset):
        return set(queryset.values_list("owner_id", flat=True))

    def test_team_descriptor_filters_rows(self):
        descriptor = VisibilityDescriptor.for_employees(self.index.team(self.manager.pk), requester_id=self.manager.pk)
        self.assertEqual(
            self.owners(apply_scope(Lead.objects.all(), descriptor)),
            {self.manager.pk, self.report.pk, self.deep_report.pk},
        )

    def test_department_descriptor_uses_department_column(self):
        members = self.index.department_members(self.sales.pk)
        descriptor = VisibilityDescriptor.for_department(self.sales.pk, members, requester_id=self.manager.pk)
        rows = apply_scope(Lead.objects.all(), descriptor)
        self.assertNotIn(self.developer.pk, self.owners(rows))
        self.assertEqual(rows.count(), 4)

    def test_employee_filter_is_intersected_with_visibility(self):
        descriptor = VisibilityDescriptor.for_employees({self.manager.pk}, requester_id=self.manager.pk)
        rows = apply_scope(Lead.objects.all(), descriptor, employee_ids=[self.outsider.pk])
        self.assertEqual(self.owners(rows), {self.manager.pk})

    def test_recursive_employee_filter(self):
        rows = apply_scope(
            Lead.objects.all(),
            VisibilityDescriptor.unrestricted(),
            employee_ids=[self.report.pk],
            recursive=True,
            hierarchy=self.index,
        )
        self.assertEqual(self.owners(rows), {self.report.pk, self.deep_report.pk})

    def test_foreign_department_filter_is_ignored(self):
        descriptor = VisibilityDescriptor.for_employees({self.manager.pk}, requester_id=self.manager.pk)
        rows = apply_scope(Lead.objects.all(), descriptor, department_id=self.product.pk)
        self.assertEqual(self.owners(rows), {self.manager.pk})

    def test_department_filter_for_unrestricted(self):
        rows = apply_scope(Lead.objects.all(), VisibilityDescriptor.unrestricted(), department_id=self.product.pk)
        self.assertEqual(self.owners(rows), {self.developer.pk})

    def test_empty_visibility_matches_nothing(self):
        descriptor = VisibilityDescriptor.for_employees((), requester_id=None)
        self.assertFalse(apply_scope(Lead.objects.all(), descriptor).exists())


class AccessCheckApiTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        sales = make_department("SALES")
        role = make_role("SALES_BM", {"leads": {"view": "team"}})
        self.manager = make_employee(sales, role)
        self.report = make_employee(sales, role, manager=self.manager)
        self.outsider = make_employee(sales, role)

    def test_reports_decision_for_owner(self):
        self.client.force_authenticate(user=self.manager.user)

        inside = self.client.get(f"/api/v1/access/check/?module=leads&action=view&owner_id={self.report.pk}")
        outside = self.client.get(f"/api/v1/access/check/?module=leads&action=view&owner_id={self.outsider.pk}")

        self.assertEqual(inside.status_code, 200)
        self.assertEqual(inside.data, {"allowed": True, "module": "leads", "action": "view", "scope": "team"})
        self.assertFalse(outside.data["allowed"])

    def test_missing_parameters(self):
        self.client.force_authenticate(user=self.manager.user)
        response = self.client.get("/api/v1/access/check/?module=leads")
        self.assertEqual(response.status_code, 400)

    def test_requires_login(self):
        response = self.client.get("/api/v1/access/check/?module=leads&action=view")
        self.assertEqual(response.status_code, 401)
