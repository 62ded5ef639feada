from marketplace.models import Task
from marketplace.services import get_task_status
from taskhub.exceptions import Forbidden, NotFound

from .models import Conversation

CONVERSATION_NOT_FOUND = "Conversation not found."
NOT_A_PARTICIPANT = "You are not a participant in this conversation."
TASK_NOT_FOUND = "Associated task not found."
CHAT_UNAVAILABLE = "Chat is only available when the task is in progress or completed."


def authorize_conversation(conversation_id, user_id) -> Conversation:
    """
    Load a conversation the caller may read and write.

    Chat is live only while the linked task is in progress or completed; the
    task's status is read at call time rather than mirrored on the
    conversation.

    Raises:
        NotFound: If the conversation does not exist
        Forbidden: If the caller is not a participant, the task is gone, or
            the task is not in a chat-eligible status
    """
    try:
        conversation = Conversation.objects.prefetch_related('participant_links').get(pk=conversation_id)
    except Conversation.DoesNotExist:
        raise NotFound(CONVERSATION_NOT_FOUND)

    if user_id not in conversation.participant_ids:
        raise Forbidden(NOT_A_PARTICIPANT)

    try:
        task = get_task_status(conversation.task_id)
    except Task.DoesNotExist:
        raise Forbidden(TASK_NOT_FOUND)

    if not task.allows_chat:
        raise Forbidden(CHAT_UNAVAILABLE)

    return conversation
