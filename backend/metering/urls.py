"""API routing for metering module."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register(r'sessions', views.MonitoringSessionViewSet, basename='monitoring-session')

urlpatterns = [
    path('', include(router.urls)),
]
