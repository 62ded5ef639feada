from rest_framework import serializers

from .models import Message, MessageAttachment


class MessageAttachmentSerializer(serializers.ModelSerializer):
    size_mb = serializers.SerializerMethodField()

    class Meta:
        model = MessageAttachment
        fields = ['url', 'public_id', 'filename', 'mime_type', 'size', 'size_mb', 'resource_type', 'uploaded_at']

    def get_size_mb(self, obj):
        return obj.get_size_mb()


class MessageSerializer(serializers.ModelSerializer):
    """
    Client view of a message.

    ``text`` is the plaintext the chat service attached after decryption; the
    stored envelope and the per-user delete set are never exposed.
    """
    sender_id = serializers.CharField(read_only=True)
    conversation_id = serializers.UUIDField(read_only=True)
    text = serializers.SerializerMethodField()
    is_decryptable = serializers.SerializerMethodField()
    attachments = MessageAttachmentSerializer(many=True, read_only=True)

    class Meta:
        model = Message
        fields = ['id', 'conversation_id', 'sender_id', 'text', 'is_decryptable', 'attachments',
                  'is_read', 'read_at', 'created_at']
        read_only_fields = fields

    def get_text(self, obj):
        return getattr(obj, 'text', None)

    def get_is_decryptable(self, obj):
        return getattr(obj, 'is_decryptable', True)
