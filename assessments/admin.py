from django.contrib import admin

from .models import ExamSession, ManualGrade, ScoringIssue, SessionAnswer


class SessionAnswerInline(admin.TabularInline):
    model = SessionAnswer
    extra = 0
    readonly_fields = ['question', 'value', 'revision', 'file_url', 'file_size', 'updated_at']


@admin.register(ExamSession)
class ExamSessionAdmin(admin.ModelAdmin):
    list_display = ['participant', 'exam', 'status', 'auto_submitted', 'score', 'total_points', 'submitted_at']
    list_filter = ['status', 'auto_submitted']
    readonly_fields = ['started_at', 'submitted_at', 'auto_submitted', 'status', 'score', 'total_points']
    inlines = [SessionAnswerInline]

    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(ManualGrade)
admin.site.register(ScoringIssue)
