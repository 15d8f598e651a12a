from io import StringIO

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.management import CommandError, call_command
from django.db import IntegrityError, transaction
from django.test import TestCase
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.hr.models import Employee
from apps.permissions.defaults import expected_matrix
from apps.permissions.models import Permission, Role, RolePermission
from apps.permissions.services.catalog import Discrepancy, Grant, PermissionCatalog
from apps.security.exceptions import NotFound, ScopeConflictError
from apps.security.scopes import Scope
from shared.testing import AccessFixtureMixin, make_department, make_employee, make_role


def permission(module, action, scope):
    return Permission.objects.get_or_create(module=module, action=action, scope_type=scope)[0]


class PermissionCatalogTests(AccessFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.role = make_role("SALES_BM")

    def test_database_refuses_second_scope_for_same_action(self):
        RolePermission.objects.create(role=self.role, permission=permission("leads", "view", "team"))
        with self.assertRaises(IntegrityError), transaction.atomic():
            RolePermission.objects.create(role=self.role, permission=permission("leads", "view", "all"))

    def test_assign_scope_replaces_existing_scope(self):
        PermissionCatalog.assign_scope(self.role, "leads", "view", "own")
        PermissionCatalog.assign_scope(self.role, "leads", "view", "team")

        self.assertEqual(PermissionCatalog.scope_for(self.role.pk, "leads", "view"), Scope.TEAM)
        self.assertEqual(RolePermission.objects.filter(role=self.role).count(), 1)

    def test_assign_scope_rejects_unknown_scope(self):
        from rest_framework.exceptions import ValidationError

        with self.assertRaises(ValidationError):
            PermissionCatalog.assign_scope(self.role, "leads", "view", "company")

    def test_write_invalidates_cached_grants(self):
        self.assertEqual(PermissionCatalog.get_permissions_for_role(self.role.pk), frozenset())

        PermissionCatalog.assign_scope(self.role, "tasks", "view", "team")

        self.assertEqual(
            PermissionCatalog.get_permissions_for_role(self.role.pk), frozenset({Grant("tasks", "view", "team")})
        )

    def test_revoke(self):
        PermissionCatalog.assign_scope(self.role, "tasks", "view", "team")
        self.assertEqual(PermissionCatalog.revoke(self.role, "tasks", "view"), 1)
        self.assertIsNone(PermissionCatalog.scope_for(self.role.pk, "tasks", "view"))

    def test_conflicting_cached_scopes_resolve_to_narrowest(self):
        cache.set(
            PermissionCatalog.get_cache_key(self.role.pk),
            [("leads", "view", "all"), ("leads", "view", "team")],
        )

        self.assertEqual(PermissionCatalog.scope_for(self.role.pk, "leads", "view"), Scope.TEAM)
        fault = AuditLog.objects.get(action="INTEGRITY_FAULT", entity_type="Role")
        self.assertEqual(fault.after_value["scopes"], ["all", "team"])

    def test_conflict_is_reported_once_per_interval(self):
        cache.set(
            PermissionCatalog.get_cache_key(self.role.pk),
            [("leads", "view", "all"), ("leads", "view", "team")],
        )

        for _ in range(3):
            PermissionCatalog.scope_for(self.role.pk, "leads", "view")

        self.assertEqual(AuditLog.objects.filter(action="INTEGRITY_FAULT", entity_type="Role").count(), 1)

    def test_unknown_stored_scope_is_own(self):
        cache.set(PermissionCatalog.get_cache_key(self.role.pk), [("leads", "view", "galaxy")])
        self.assertEqual(PermissionCatalog.scope_for(self.role.pk, "leads", "view"), Scope.OWN)

    def test_sync_is_idempotent(self):
        ids = [permission("leads", "view", "team").pk, permission("tasks", "view", "own").pk]

        with self.captureOnCommitCallbacks(execute=True):
            first = PermissionCatalog.sync_role_permissions(self.role.pk, ids)
        with self.captureOnCommitCallbacks(execute=True):
            second = PermissionCatalog.sync_role_permissions(self.role.pk, ids)

        self.assertEqual(first, second)
        self.assertEqual(RolePermission.objects.filter(role=self.role).count(), 2)
        self.assertEqual(AuditLog.objects.filter(action="PERMISSION_CHANGE").count(), 1)

    def test_sync_rejects_two_scopes_for_one_action(self):
        PermissionCatalog.assign_scope(self.role, "tasks", "view", "own")
        ids = [permission("leads", "view", "team").pk, permission("leads", "view", "all").pk]

        with self.assertRaises(ScopeConflictError):
            PermissionCatalog.sync_role_permissions(self.role.pk, ids)
        self.assertEqual(PermissionCatalog.scope_for(self.role.pk, "tasks", "view"), Scope.OWN)

    def test_sync_rejects_unknown_ids(self):
        with self.assertRaises(NotFound):
            PermissionCatalog.sync_role_permissions(self.role.pk, [987654])

    def test_matrix(self):
        PermissionCatalog.assign_scope(self.role, "leads", "view", "team")
        make_role("OLD", {"leads": {"view": "all"}}, is_active=False)

        self.assertEqual(PermissionCatalog.matrix(), {"SALES_BM": {"leads": {"view": "team"}}})


class CatalogAuditTests(AccessFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.role = make_role("SALES_BDE", {
            "leads": {"view": "team"},
            "tasks": {"view": "own"},
            "reports": {"generate": "all"},
        })
        self.expected = {
            "SALES_BDE": {"leads": {"view": "own"}, "tasks": {"view": "own"}, "eod": {"create": "own"}},
            "GHOST": {"leads": {"view": "own"}},
        }

    def test_audit_lists_every_kind(self):
        found = {(d.kind, d.role_code, d.module, d.action) for d in PermissionCatalog.audit(self.expected)}

        self.assertEqual(found, {
            (Discrepancy.MISSING_ROLE, "GHOST", "", ""),
            (Discrepancy.WRONG, "SALES_BDE", "leads", "view"),
            (Discrepancy.MISSING, "SALES_BDE", "eod", "create"),
            (Discrepancy.EXTRA, "SALES_BDE", "reports", "generate"),
        })

    def test_apply_keeps_extras_unless_pruning(self):
        fixed = PermissionCatalog.apply(PermissionCatalog.audit(self.expected, role_codes=["SALES_BDE"]))

        self.assertEqual(fixed, 2)
        self.assertEqual(PermissionCatalog.scope_for(self.role.pk, "leads", "view"), Scope.OWN)
        self.assertEqual(PermissionCatalog.scope_for(self.role.pk, "reports", "generate"), Scope.ALL)

        PermissionCatalog.apply(PermissionCatalog.audit(self.expected, role_codes=["SALES_BDE"]), prune=True)
        self.assertIsNone(PermissionCatalog.scope_for(self.role.pk, "reports", "generate"))
        self.assertEqual(PermissionCatalog.audit(self.expected, role_codes=["SALES_BDE"]), [])


class RoleCommandTests(AccessFixtureMixin, TestCase):
    def test_seed_is_repeatable(self):
        call_command("seed_default_roles", stdout=StringIO())
        grants = RolePermission.objects.count()
        call_command("seed_default_roles", stdout=StringIO())

        self.assertEqual(RolePermission.objects.count(), grants)
        self.assertEqual(PermissionCatalog.audit(expected_matrix()), [])
        self.assertTrue(Role.objects.get(code="ADMIN").is_super_admin)
        self.assertFalse(RolePermission.objects.filter(role__code="UNASSIGNED").exists())

    def test_seed_bde_holds_own_leads(self):
        call_command("seed_default_roles", stdout=StringIO())
        bde = Role.objects.get(code="SALES_BDE")
        self.assertEqual(PermissionCatalog.scope_for(bde.pk, "leads", "view"), Scope.OWN)
        bm = Role.objects.get(code="SALES_BM")
        self.assertEqual(PermissionCatalog.scope_for(bm.pk, "leads", "view"), Scope.TEAM)

    def test_seed_admin_login(self):
        call_command(
            "seed_default_roles", "--admin-email=boss@example.com", "--admin-password=s3cret-pass", stdout=StringIO()
        )
        admin = Employee.objects.get(email="boss@example.com")
        self.assertEqual(admin.role.code, "ADMIN")
        self.assertTrue(admin.user.check_password("s3cret-pass"))

    def test_seed_admin_needs_password(self):
        with self.assertRaises(CommandError):
            call_command("seed_default_roles", "--admin-email=boss@example.com", stdout=StringIO())

    def test_audit_command_fix(self):
        call_command("seed_default_roles", stdout=StringIO())
        bde = Role.objects.get(code="SALES_BDE")
        PermissionCatalog.assign_scope(bde, "leads", "view", "all")

        out = StringIO()
        with self.assertRaises(CommandError):
            call_command("audit_role_permissions", "--role=SALES_BDE", "--strict", "--no-color", stdout=out)
        self.assertIn("SALES_BDE leads:view: WRONG", out.getvalue())

        call_command("audit_role_permissions", "--role=SALES_BDE", "--fix", "--strict", stdout=StringIO())
        self.assertEqual(PermissionCatalog.scope_for(bde.pk, "leads", "view"), Scope.OWN)

    def test_audit_command_unknown_role(self):
        with self.assertRaises(CommandError):
            call_command("audit_role_permissions", "--role=NOPE", stdout=StringIO())

    def test_sync_permissions_creates_registered_triples(self):
        call_command("sync_permissions", stdout=StringIO())
        self.assertTrue(Permission.objects.filter(module="leads", action="view", scope_type="team").exists())
        self.assertFalse(Permission.objects.filter(module="leads", action="create", scope_type="own").exists())


class RoleApiTests(AccessFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        department = make_department("ADMIN")
        self.admin = make_employee(department, make_role("ADMIN", is_super_admin=True))
        self.role = make_role("SALES_BM", {"leads": {"view": "team"}, "employees": {"view": "team"}})
        self.manager = make_employee(department, self.role)

    def test_sync_endpoint_conflict_is_409(self):
        self.client.force_authenticate(user=self.admin.user)
        ids = [permission("leads", "view", "own").pk, permission("leads", "view", "all").pk]

        response = self.client.post(f"/api/v1/admin/roles/{self.role.pk}/permissions/", {"permission_ids": ids}, format="json")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(PermissionCatalog.scope_for(self.role.pk, "leads", "view"), Scope.TEAM)

    def test_sync_endpoint_replaces_grants(self):
        self.client.force_authenticate(user=self.admin.user)
        ids = [permission("leads", "view", "all").pk]

        response = self.client.post(f"/api/v1/admin/roles/{self.role.pk}/permissions/", {"permission_ids": ids}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["permissions"], [{"module": "leads", "action": "view", "scope": "all"}])
        self.assertEqual(PermissionCatalog.scope_for(self.role.pk, "leads", "view"), Scope.ALL)

    def test_grants_readable_with_employees_view(self):
        self.client.force_authenticate(user=self.manager.user)
        response = self.client.get(f"/api/v1/admin/roles/{self.role.pk}/permissions/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["role"], "SALES_BM")

    def test_sync_needs_manage(self):
        self.client.force_authenticate(user=self.manager.user)
        response = self.client.post(f"/api/v1/admin/roles/{self.role.pk}/permissions/", {"permission_ids": []}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_pending_users_lists_logins_without_access(self):
        loose = get_user_model().objects.create_user(username="newcomer", password="test-pass-123")
        waiting = make_employee(make_department("SALES"), make_role("UNASSIGNED"))
        self.client.force_authenticate(user=self.admin.user)

        response = self.client.get("/api/v1/admin/pending-users/")

        self.assertEqual(response.status_code, 200)
        usernames = {row["username"] for row in response.data}
        self.assertEqual(usernames, {loose.username, waiting.user.username})
        loose_row = next(row for row in response.data if row["username"] == loose.username)
        self.assertIsNone(loose_row["employee"])

    def test_pending_users_needs_manage(self):
        self.client.force_authenticate(user=self.manager.user)
        self.assertEqual(self.client.get("/api/v1/admin/pending-users/").status_code, 403)

    def test_matrix_endpoint(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.get("/api/v1/admin/permissions-matrix/?roles=SALES_BM")
        self.assertEqual(response.data, {"SALES_BM": {"employees": {"view": "team"}, "leads": {"view": "team"}}})

    def test_permission_list_filters_by_module(self):
        self.client.force_authenticate(user=self.admin.user)
        response = self.client.get("/api/v1/admin/permissions/?module=employees")
        self.assertEqual({row["module"] for row in response.data}, {"employees"})
