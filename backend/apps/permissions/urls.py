from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import PendingUserListView, PermissionListView, PermissionMatrixView, RoleViewSet

router = DefaultRouter()
router.register(r'roles', RoleViewSet)

urlpatterns = [
    path('permissions/', PermissionListView.as_view(), name='permission-list'),
    path('permissions-matrix/', PermissionMatrixView.as_view(), name='permission-matrix'),
    path('pending-users/', PendingUserListView.as_view(), name='pending-user-list'),
    path('', include(router.urls)),
]
