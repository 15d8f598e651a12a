from django.urls import path
from .views import ChangePasswordView, CurrentUserProfileView

urlpatterns = [
    path('me/', CurrentUserProfileView.as_view(), name='user-profile'),
    path('change-password/', ChangePasswordView.as_view(), name='change-password'),
]
