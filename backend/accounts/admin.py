"""Admin registrations for account models."""
from django.contrib import admin

from . import models


class MeterLinkInline(admin.TabularInline):
    model = models.MeterLink
    extra = 0


@admin.register(models.Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("document", "name", "email", "phone")
    search_fields = ("document", "name", "email")


@admin.register(models.WaterAccount)
class WaterAccountAdmin(admin.ModelAdmin):
    list_display = ("number", "customer", "state", "consumption_limit")
    list_filter = ("state",)
    search_fields = ("number", "customer__name", "customer__document")
    inlines = [MeterLinkInline]
