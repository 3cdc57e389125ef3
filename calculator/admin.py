from django.contrib import admin
from .models import CurrencyRate


@admin.register(CurrencyRate)
class CurrencyRateAdmin(admin.ModelAdmin):
    list_display = (
        "currency",
        "rate_to_usd",
        "updated_at",
    )
    search_fields = ("currency",)
    ordering = ("currency",)
    readonly_fields = ("updated_at",)
    list_filter = ("updated_at",)
