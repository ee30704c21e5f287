from django.contrib import admin
from .models import PointTransaction


@admin.register(PointTransaction)
class PointTransactionAdmin(admin.ModelAdmin):
    """Read-only: the ledger is append-only and written through PointsLedger."""
    list_display = ('user', 'amount', 'type', 'reason', 'activity', 'awarded_by', 'created_at')
    list_filter = ('type', 'created_at')
    search_fields = ('user__username', 'reason', 'activity__title')
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
