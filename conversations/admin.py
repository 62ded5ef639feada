from django.contrib import admin
from .models import Conversation, ConversationParticipant


class ConversationParticipantInline(admin.TabularInline):
    model = ConversationParticipant
    extra = 0
    readonly_fields = ['user', 'position']
    can_delete = False


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ['id', 'task', 'status', 'created_at', 'updated_at', 'last_message_at']
    list_filter = ['status', 'created_at', 'updated_at']
    search_fields = ['id', 'participants__user_id', 'task__title']
    readonly_fields = ['id', 'created_at', 'updated_at', 'last_message_at']
    inlines = [ConversationParticipantInline]
