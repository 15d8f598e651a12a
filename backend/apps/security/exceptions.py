"""
Error taxonomy for access control.

All classes derive from DRF's ``APIException`` family so views can raise
them directly and DRF renders the status code. ``Forbidden`` always carries
the same generic message; the reason for a denial is logged, never returned.
"""
from rest_framework import exceptions, status


class Forbidden(exceptions.PermissionDenied):
    default_detail = "You do not have permission to perform this action."
    default_code = "forbidden"

    def __init__(self, reason: str = ""):
        super().__init__()
        self.reason = reason


class Unauthenticated(exceptions.NotAuthenticated):
    default_code = "unauthenticated"


class NotFound(exceptions.NotFound):
    default_code = "not_found"


class DataIntegrityFault(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The requested change conflicts with existing data."
    default_code = "data_integrity_fault"


class HierarchyCycleError(DataIntegrityFault):
    default_detail = "An employee cannot report to themselves or to one of their own reports."
    default_code = "hierarchy_cycle"


class ScopeConflictError(DataIntegrityFault):
    default_detail = "A role can hold only one scope per module and action."
    default_code = "scope_conflict"
