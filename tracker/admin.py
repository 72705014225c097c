"""Django admin registrations for the tracker models."""
from django.contrib import admin

from .models import (
    Attempt,
    AuditEvent,
    Batch,
    BatchIntern,
    EvaluationRecord,
    ExportRecord,
    OpdCompetency,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'full_name', 'role', 'reg_no', 'batch', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('email', 'full_name', 'reg_no')


class BatchInternInline(admin.TabularInline):
    model = BatchIntern
    extra = 0


@admin.register(Batch)
class BatchAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'start_date', 'status', 'created_at')
    list_filter = ('status',)
    inlines = [BatchInternInline]


class AttemptInline(admin.TabularInline):
    model = Attempt
    extra = 0
    fields = ('number', 'attempt_date', 'faculty', 'total_score', 'grade', 'result', 'status')
    readonly_fields = fields


@admin.register(EvaluationRecord)
class EvaluationRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'intern', 'module', 'module_code', 'attempt_count')
    list_filter = ('module',)
    inlines = [AttemptInline]


@admin.register(OpdCompetency)
class OpdCompetencyAdmin(admin.ModelAdmin):
    list_display = ('intern', 'module_code', 'consecutive_success_count', 'competent', 'achieved_at')
    list_filter = ('competent',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'user', 'object_type', 'object_id', 'ip')
    list_filter = ('action',)


@admin.register(ExportRecord)
class ExportRecordAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'export_type', 'status', 'generated_by', 'filename')
    list_filter = ('export_type', 'status')
