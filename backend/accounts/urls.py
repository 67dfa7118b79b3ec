"""API routing for accounts module."""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from . import views

# History first: its routes would otherwise match the account detail route
router = SimpleRouter()
router.register(r'history', views.CommandHistoryViewSet, basename='command-history')
router.register(r'', views.AccountViewSet, basename='account')

urlpatterns = [
    path('', include(router.urls)),
]
