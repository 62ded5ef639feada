from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = (
        "user_name",
        "user_id",
        "email",
        "created_at",
    )
    search_fields = ("user_name", "user_id", "email")
