from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.hr.services.hierarchy import HierarchyIndex
from apps.security.requester import get_requester

from .services import dashboard_stats, recent_activity


class DashboardStatsView(APIView):
    """Lead and task counters; a module the requester cannot view counts as zero."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(dashboard_stats(get_requester(request), HierarchyIndex.for_request(request)))


class RecentActivityView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(recent_activity(get_requester(request), HierarchyIndex.for_request(request)))
