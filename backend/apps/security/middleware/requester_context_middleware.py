from django.utils.functional import SimpleLazyObject

from apps.security.requester import get_requester


class RequesterContextMiddleware:
    """
    Attaches ``request.requester`` (employee, department and role of the
    session user), resolved on first use. Token-authenticated API views
    resolve their own requester after DRF authentication runs.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.requester = SimpleLazyObject(lambda: get_requester(request))
        return self.get_response(request)
