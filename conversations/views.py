from django.conf import settings
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from dmessages.serializers import MessageSerializer
from taskhub.exceptions import ValidationError
from users.serializers import UserSummarySerializer

from .serializers import ConversationListSerializer
from .services import get_chat_service


class ConversationListView(APIView):
    """List the caller's active conversations, optionally only those changed since a timestamp"""

    def get(self, request):
        user_id = request.user.user_id
        conversations = get_chat_service().list_conversations(
            user_id, updated_since=request.query_params.get('updatedSince')
        )

        serializer = ConversationListSerializer(
            conversations,
            many=True,
            context={'request': request}
        )
        return Response({
            'message': 'Conversations fetched successfully.',
            'conversations': serializer.data,
        })


class ConversationMessagesView(APIView):
    """
    Get a page of messages for a conversation and send new messages
    """
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get(self, request, conversation_id):
        params = request.query_params
        recipient, messages = get_chat_service().list_messages(
            conversation_id,
            request.user.user_id,
            limit=params.get('limit'),
            before=params.get('before'),
            after=params.get('after'),
        )

        return Response({
            'message': 'Messages fetched successfully.',
            'recipient': UserSummarySerializer(recipient).data if recipient else None,
            'messages': MessageSerializer(messages, many=True).data,
        })

    def post(self, request, conversation_id):
        files = request.FILES.getlist('attachments')
        self._check_upload_limits(files)

        message = get_chat_service().send_message(
            conversation_id,
            request.user.user_id,
            text=request.data.get('text'),
            uploads=files,
        )

        return Response({
            'message': 'Message sent successfully.',
            'data': MessageSerializer(message).data,
        }, status=status.HTTP_201_CREATED)

    def _check_upload_limits(self, files):
        max_files = settings.CHAT_MAX_ATTACHMENTS
        if len(files) > max_files:
            raise ValidationError(f"You can upload a maximum of {max_files} attachments per message.")

        max_size = settings.CHAT_MAX_ATTACHMENT_SIZE
        for file in files:
            if file.size > max_size:
                raise ValidationError(
                    f"Attachment {file.name} exceeds the {max_size // (1024 * 1024)} MB size limit."
                )


class ConversationReadView(APIView):
    """Mark the other participant's messages in a conversation as read"""

    def patch(self, request, conversation_id):
        updated = get_chat_service().mark_read(conversation_id, request.user.user_id)
        return Response({
            'message': 'Conversation marked as read.',
            'updated': updated,
        })
