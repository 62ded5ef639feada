from rest_framework import serializers

from .models import User


class UserSummarySerializer(serializers.ModelSerializer):
    """Public view of another user: id, display name and avatar only."""
    id = serializers.CharField(source='user_id', read_only=True)
    name = serializers.CharField(source='user_name', read_only=True)
    image = serializers.CharField(source='avatar_url', read_only=True, allow_null=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'image']
