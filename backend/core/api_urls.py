from django.urls import path, include
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from shared.views import HealthCheckView

urlpatterns = [
    path('auth/token/', TokenObtainPairView.as_view(), name='token-obtain'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('users/', include('apps.users.urls')),
    path('hr/', include('apps.hr.urls')),
    path('admin/', include('apps.permissions.urls')),
    path('access/', include('apps.security.urls')),
    path('leads/', include('apps.sales.urls')),
    path('tasks/', include('apps.tasks.urls')),
    path('projects/', include('apps.projects.urls')),
    path('products/', include('apps.products.urls')),
    path('reports/', include('apps.reports.urls')),
    path('dashboard/', include('apps.dashboard.urls')),
    path('activity/', include('apps.audit.urls')),
    path('health/', HealthCheckView.as_view()),
]
