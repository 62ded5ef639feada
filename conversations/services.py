import logging
from typing import List, Optional

from django.utils import timezone

from dmessages.models import EMPTY_MESSAGE, Message
from taskhub.exceptions import StoreFailure, ValidationError
from users.models import User
from utils.attachment_storage import (
    AttachmentUploadError,
    RemoteCleanupFailure,
    get_attachment_storage,
)
from utils.encryption import EncryptionError, decrypt_text, encrypt_text, to_wellformed_text

from .models import Conversation, resolve_other_participant
from .permissions import authorize_conversation

logger = logging.getLogger(__name__)


class ChatService:
    """
    Use cases of the chat API.

    Every operation on a single conversation goes through
    ``authorize_conversation`` first. Message deletes are gated on the sender
    instead, since a message id already pins its conversation.
    """

    def __init__(self, storage=None):
        self._storage = storage

    @property
    def storage(self):
        if self._storage is None:
            self._storage = get_attachment_storage()
        return self._storage

    def list_conversations(self, user_id: str, updated_since=None) -> List[Conversation]:
        """
        Active conversations of ``user_id``, each with ``other_user`` set to the
        other participant's User (or None if that account is gone) and
        ``unread_count`` annotated.
        """
        conversations = list(
            Conversation.objects.for_user(user_id, updated_since)
            .unread_count_for(user_id)
            .select_related('task', 'application')
            .prefetch_related('participant_links__user')
        )
        for conversation in conversations:
            other_id = resolve_other_participant(conversation, user_id)
            conversation.other_user = next(
                (link.user for link in conversation.participant_links.all() if link.user_id == other_id),
                None,
            )
        return conversations

    def list_messages(self, conversation_id, user_id: str, limit=None, before=None, after=None):
        """
        Returns ``(recipient, messages)`` where ``recipient`` is the other
        participant's User and ``messages`` is one page with plaintext attached.
        """
        conversation = authorize_conversation(conversation_id, user_id)
        recipient_id = conversation.other_participant_id(user_id)
        recipient = User._default_manager.filter(pk=recipient_id).first() if recipient_id else None

        messages = Message.objects.page(conversation.pk, user_id, limit=limit, before=before, after=after)
        for message in messages:
            self._reveal(message)
        return recipient, messages

    def send_message(self, conversation_id, user_id: str, text: Optional[str] = None, uploads=()) -> Message:
        """
        Store a message from ``user_id``.

        ``uploads`` are file objects (``name``, ``content_type``, ``size``,
        ``read()``) that are pushed to the attachment store once the caller is
        authorized. The returned message carries the plaintext for the sender.
        """
        conversation = authorize_conversation(conversation_id, user_id)

        text = to_wellformed_text(text)
        uploads = list(uploads)
        if not text and not uploads:
            raise ValidationError(EMPTY_MESSAGE)

        attachments = self._store_uploads(uploads)
        try:
            encrypted_text = encrypt_text(text)
            message = Message.objects.append(conversation, user_id, encrypted_text, attachments)
        except Exception:
            self._discard(attachments)
            raise

        Conversation.objects.touch_last_message_at(conversation.pk, timezone.now())

        message.text = text if encrypted_text else None
        message.is_decryptable = True
        return message

    def mark_read(self, conversation_id, user_id: str) -> int:
        conversation = authorize_conversation(conversation_id, user_id)
        return Message.objects.mark_read_from_other(conversation.pk, user_id)

    def delete_for_me(self, message_id, user_id: str):
        return Message.objects.soft_delete_for(message_id, user_id)

    def delete_for_everyone(self, message_id, user_id: str):
        return Message.objects.delete_for_everyone(message_id, user_id, self.storage)

    def _reveal(self, message):
        try:
            message.text = decrypt_text(message.encrypted_text)
            message.is_decryptable = True
        except EncryptionError as e:
            logger.warning(f"Could not decrypt message {message.pk}: {e}")
            message.text = None
            message.is_decryptable = False

    def _store_uploads(self, uploads):
        attachments = []
        for upload in uploads:
            try:
                stored = self.storage.store(upload.read(), upload.name, upload.content_type)
            except AttachmentUploadError as e:
                logger.error(f"Error processing chat attachments: {e}")
                self._discard(attachments)
                raise StoreFailure("Failed to upload chat attachments.")

            attachments.append({
                'url': stored.url,
                'public_id': stored.public_id,
                'filename': upload.name,
                'mime_type': upload.content_type or '',
                'size': upload.size,
                'resource_type': stored.resource_type,
            })
        return attachments

    def _discard(self, attachments):
        for attachment in attachments:
            try:
                self.storage.delete(attachment['public_id'], attachment['resource_type'])
            except RemoteCleanupFailure as e:
                logger.error(f"Orphaned attachment after failed send: {e}")


_chat_service = None


def get_chat_service() -> ChatService:
    """Get the global chat service instance, creating it if needed."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service
