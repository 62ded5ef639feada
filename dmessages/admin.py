from django.contrib import admin
from .models import Message, MessageAttachment


class MessageAttachmentInline(admin.TabularInline):
    model = MessageAttachment
    extra = 0
    readonly_fields = ['url', 'public_id', 'filename', 'mime_type', 'size', 'resource_type', 'uploaded_at']


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    # Message bodies are encrypted at rest and are not shown here
    list_display = ['id', 'conversation', 'sender', 'has_text', 'is_read', 'created_at']
    list_filter = ['is_read', 'created_at']
    search_fields = ['sender__user_id', 'conversation__id']
    readonly_fields = ['created_at', 'read_at']
    exclude = ['encrypted_text']
    inlines = [MessageAttachmentInline]

    @admin.display(boolean=True, description='Text')
    def has_text(self, obj):
        return bool(obj.encrypted_text)
