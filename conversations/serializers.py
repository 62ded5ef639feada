from rest_framework import serializers

from users.serializers import UserSummarySerializer

from .models import Conversation


class ConversationListSerializer(serializers.ModelSerializer):
    """Conversation entry for the polling list, seen from the requesting user"""
    task = serializers.SerializerMethodField()
    application = serializers.SerializerMethodField()
    other_user = UserSummarySerializer(read_only=True, allow_null=True)
    unread_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Conversation
        fields = ['id', 'task', 'application', 'status', 'other_user', 'unread_count',
                  'last_message_at', 'created_at', 'updated_at']

    def get_task(self, obj):
        if obj.task is None:
            return None
        return {'id': str(obj.task.pk), 'title': obj.task.title, 'status': obj.task.status}

    def get_application(self, obj):
        if obj.application is None:
            return None
        return {'id': str(obj.application.pk), 'status': obj.application.status}
