from django.urls import path

from .views import AttendanceReportView, ProductivityReportView, SalesReportView

urlpatterns = [
    path('sales/', SalesReportView.as_view(), name='report-sales'),
    path('productivity/', ProductivityReportView.as_view(), name='report-productivity'),
    path('attendance/', AttendanceReportView.as_view(), name='report-attendance'),
]
