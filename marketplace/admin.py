from django.contrib import admin
from .models import Application, Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'status', 'uploaded_by', 'assigned_to', 'updated_at']
    list_filter = ['status']
    search_fields = ['title', 'uploaded_by__user_id']


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ['id', 'task', 'applicant', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['applicant__user_id', 'task__title']
