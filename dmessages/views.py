from rest_framework.response import Response
from rest_framework.views import APIView

from conversations.services import get_chat_service


class MessageDeleteView(APIView):
    """Delete a message for the requesting sender only"""

    def delete(self, request, message_id):
        get_chat_service().delete_for_me(message_id, request.user.user_id)
        return Response({
            'message': 'Message deleted successfully (for this user).',
            'message_id': message_id,
        })


class MessageDeleteForEveryoneView(APIView):
    """Delete a message for both participants and purge its attachments"""

    def delete(self, request, message_id):
        report = get_chat_service().delete_for_everyone(message_id, request.user.user_id)
        return Response({
            'message': 'Message deleted for everyone successfully.',
            'message_id': message_id,
            'attachments': {
                'deleted': report.deleted,
                'failed': report.failed,
            },
        })
