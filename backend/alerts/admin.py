"""Admin registrations for alert records."""
from django.contrib import admin

from . import models


@admin.register(models.AlertRecord)
class AlertRecordAdmin(admin.ModelAdmin):
    list_display = ("id", "account_id", "current_volume", "limit_volume", "raised_at", "read")
    list_filter = ("read",)
    search_fields = ("account_id", "customer_document")
    readonly_fields = ("id", "account_id", "customer_document", "current_volume", "limit_volume", "raised_at")
