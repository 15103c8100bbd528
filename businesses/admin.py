# businesses/admin.py

from django.contrib import admin

from businesses.models import Business


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "phone", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "code", "phone")
    readonly_fields = ("id", "created_at", "updated_at")
