"""
apps.sites.admin
"""
from django.contrib import admin

from .models import Site, SiteAttribute


class SiteAttributeInline(admin.TabularInline):
    model = SiteAttribute
    extra = 0
    readonly_fields = ["created_at", "updated_at"]


@admin.register(Site)
class SiteAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "url", "email", "created_at"]
    search_fields = ["name", "slug", "url"]
    readonly_fields = ["id", "slug", "created_at", "updated_at"]
    ordering = ["id"]
    inlines = [SiteAttributeInline]

    def get_fields(self, request, obj=None):
        """Show the site id prominently at top of detail form."""
        fields = super().get_fields(request, obj)
        if obj:
            fields = list(fields)
            if "id" in fields:
                fields.remove("id")
                fields.insert(0, "id")
        return fields


@admin.register(SiteAttribute)
class SiteAttributeAdmin(admin.ModelAdmin):
    list_display = ["name", "site", "updated_at"]
    list_filter = ["site"]
    search_fields = ["name"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["site", "name"]
