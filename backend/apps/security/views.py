from rest_framework import serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.hr.services.hierarchy import HierarchyIndex
from apps.security.requester import get_requester
from apps.security.services.access import authorize


class AccessCheckQuerySerializer(serializers.Serializer):
    module = serializers.CharField(max_length=50)
    action = serializers.CharField(max_length=50)
    owner_id = serializers.IntegerField(required=False, min_value=1)


class AccessCheckView(APIView):
    """Lets the UI ask whether the current user may perform an action, e.g. to hide buttons."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        query = AccessCheckQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        decision = authorize(
            get_requester(request),
            query.validated_data["module"],
            query.validated_data["action"],
            target=query.validated_data.get("owner_id"),
            hierarchy=HierarchyIndex.for_request(request),
        )
        return Response(decision.as_dict())
