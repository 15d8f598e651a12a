from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import LeadViewSet

router = SimpleRouter()
router.register(r'', LeadViewSet, basename='lead')

urlpatterns = [
    path('', include(router.urls)),
]
