from django.contrib import admin

# Register your models here.
from .models import Course, Exam, Question


class QuestionInline(admin.StackedInline):
    model = Question
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ['title', 'course', 'duration_minutes', 'available_from', 'available_until', 'is_published']
    list_filter = ['is_published', 'tenant']
    inlines = [QuestionInline]


admin.site.register(Course)
