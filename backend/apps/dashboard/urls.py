from django.urls import path

from .views import DashboardStatsView, RecentActivityView

urlpatterns = [
    path('stats/', DashboardStatsView.as_view(), name='dashboard-stats'),
    path('recent-activity/', RecentActivityView.as_view(), name='dashboard-recent-activity'),
]
