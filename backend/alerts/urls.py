"""API routing for alerts module."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from . import views

router = SimpleRouter()
router.register(r'thresholds', views.ThresholdViewSet, basename='alert-threshold')
router.register(r'channels', views.ChannelViewSet, basename='alert-channel')
router.register(r'', views.AlertViewSet, basename='alert')

urlpatterns = [
    path('', include(router.urls)),
]
