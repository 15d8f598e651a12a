from django.urls import path

from .views import AccessCheckView

urlpatterns = [
    path('check/', AccessCheckView.as_view(), name='access-check'),
]
