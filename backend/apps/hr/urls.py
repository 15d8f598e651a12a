from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    AttendanceViewSet,
    DepartmentViewSet,
    EmployeeViewSet,
    EodReportViewSet,
    HierarchyTreeView,
    LeaveRequestViewSet,
)

router = DefaultRouter()
router.register(r'departments', DepartmentViewSet)
router.register(r'employees', EmployeeViewSet)
router.register(r'attendance', AttendanceViewSet)
router.register(r'eod', EodReportViewSet)
router.register(r'leaves', LeaveRequestViewSet)

urlpatterns = [
    path('hierarchy-tree/', HierarchyTreeView.as_view(), name='hr-hierarchy-tree'),
    path('', include(router.urls)),
]
