from django.contrib import admin
from .models import Activity, Participation
from .services import ActivityService


class ParticipationInline(admin.TabularInline):
    model = Participation
    extra = 0
    readonly_fields = ("user", "created_at")
    can_delete = False


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'creator', 'start_time', 'points_creator', 'points_participant', 'max_participants')
    list_filter = ('status', 'start_time')
    search_fields = ('title', 'description', 'creator__username')
    date_hierarchy = 'start_time'
    # Status only moves through the lifecycle API so payouts stay in step
    readonly_fields = ('status', 'settlement_round', 'created_at', 'updated_at')
    inlines = [ParticipationInline]

    # Deletes go through the service so a completed activity is reversed first
    def delete_model(self, request, obj):
        ActivityService.delete_activity(obj.pk, actor=request.user)

    def delete_queryset(self, request, queryset):
        for activity_id in list(queryset.values_list("pk", flat=True)):
            ActivityService.delete_activity(activity_id, actor=request.user)


@admin.register(Participation)
class ParticipationAdmin(admin.ModelAdmin):
    list_display = ('user', 'activity', 'created_at')
    list_filter = ('activity__status',)
    search_fields = ('user__username', 'activity__title')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
