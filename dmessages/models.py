import logging
from dataclasses import dataclass, field
from typing import List

from django.conf import settings
from django.db import models, transaction
from django.utils import timezone

from taskhub.exceptions import Forbidden, NotFound, ValidationError
from utils.attachment_storage import RemoteCleanupFailure
from utils.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

MESSAGE_NOT_FOUND = "Message not found."
EMPTY_MESSAGE = "Message must contain text or at least one attachment."
NOT_ALLOWED_TO_DELETE = "You are not allowed to delete this message."
NOT_ALLOWED_TO_DELETE_FOR_EVERYONE = "You are not allowed to delete this message for everyone."


@dataclass
class CleanupReport:
    """Outcome of the remote attachment purge done by delete for everyone."""
    message_id: int
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def complete(self):
        return not self.failed


def _page_size(limit):
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        return settings.CHAT_DEFAULT_PAGE_SIZE
    if limit <= 0:
        return settings.CHAT_DEFAULT_PAGE_SIZE
    return min(limit, settings.CHAT_MAX_PAGE_SIZE)


class MessageQuerySet(models.QuerySet):

    def page(self, conversation_id, user_id, limit=None, before=None, after=None):
        """
        One page of a conversation as seen by ``user_id``.

        Messages the user deleted for themselves are left out. ``before`` and
        ``after`` are exclusive bounds on ``created_at``; values that do not
        parse are ignored. The newest ``limit`` matches are selected and
        returned oldest first.
        """
        queryset = self.filter(conversation_id=conversation_id).exclude(deleted_for=user_id)

        before_at = parse_timestamp(before)
        if before_at is not None:
            queryset = queryset.filter(created_at__lt=before_at)

        after_at = parse_timestamp(after)
        if after_at is not None:
            queryset = queryset.filter(created_at__gt=after_at)

        newest = list(
            queryset.prefetch_related('attachments').order_by('-created_at', '-id')[:_page_size(limit)]
        )
        newest.reverse()
        return newest

    def append(self, conversation, sender_id, encrypted_text=None, attachments=()):
        """
        Persist a message with its attachments.

        ``attachments`` are mappings with the MessageAttachment fields.

        Raises:
            ValidationError: If the message has neither text nor attachments
        """
        attachments = list(attachments)
        if not encrypted_text and not attachments:
            raise ValidationError(EMPTY_MESSAGE)

        with transaction.atomic():
            message = self.create(
                conversation=conversation,
                sender_id=sender_id,
                encrypted_text=encrypted_text,
            )
            MessageAttachment._default_manager.bulk_create([
                MessageAttachment(message=message, position=position, **attachment)
                for position, attachment in enumerate(attachments)
            ])
        return message

    def mark_read_from_other(self, conversation_id, user_id):
        """Mark every unread message the other participant sent as read. Returns the number updated."""
        return self.filter(
            conversation_id=conversation_id,
            is_read=False,
        ).exclude(sender_id=user_id).update(is_read=True, read_at=timezone.now())

    def _owned_message(self, message_id, user_id, forbidden_message):
        try:
            message = self.get(pk=message_id)
        except self.model.DoesNotExist:
            raise NotFound(MESSAGE_NOT_FOUND)

        if message.sender_id != user_id:
            raise Forbidden(forbidden_message)
        return message

    def soft_delete_for(self, message_id, user_id):
        """Hide a message from its sender only. Repeating the call is a no-op."""
        message = self._owned_message(message_id, user_id, NOT_ALLOWED_TO_DELETE)
        message.deleted_for.add(user_id)
        return message

    def delete_for_everyone(self, message_id, user_id, storage):
        """
        Remove a message for both participants and purge its attachments.

        Each attachment is deleted from ``storage`` on its own; a failure is
        logged and recorded in the report, and the message row is removed
        regardless. Failed objects stay orphaned in the store.
        """
        message = self._owned_message(message_id, user_id, NOT_ALLOWED_TO_DELETE_FOR_EVERYONE)
        report = CleanupReport(message_id=message.pk)

        for attachment in message.attachments.all():
            try:
                storage.delete(attachment.public_id, attachment.resource_type or "raw")
            except RemoteCleanupFailure as e:
                logger.error(f"Failed to delete attachment {attachment.public_id} of message {message.pk}: {e.reason}")
                report.failed.append(attachment.public_id)
            else:
                report.deleted.append(attachment.public_id)

        message.delete()
        return report


class Message(models.Model):
    conversation = models.ForeignKey(
        'conversations.Conversation', on_delete=models.CASCADE, related_name='messages'
    )
    sender = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='sent_messages')
    # nonceHex:tagHex:cipherHex, see utils.encryption
    encrypted_text = models.TextField(null=True, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    deleted_for = models.ManyToManyField('users.User', related_name='hidden_messages', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = MessageQuerySet.as_manager()

    class Meta:
        db_table = 'dmessages_message'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['conversation', 'created_at'], name='dmessages_conv_created_idx'),
        ]

    def __str__(self):
        return f"Message {self.pk} from {self.sender_id}"


class MessageAttachment(models.Model):
    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name='attachments')
    position = models.PositiveSmallIntegerField(default=0)
    url = models.CharField(max_length=500)
    public_id = models.CharField(max_length=255)
    filename = models.CharField(max_length=255, blank=True)
    mime_type = models.CharField(max_length=100, blank=True)
    size = models.BigIntegerField(null=True, blank=True)
    resource_type = models.CharField(max_length=20, default="raw")
    uploaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'dmessages_messageattachment'
        ordering = ['position', 'id']

    def get_size_mb(self):
        """Get file size in MB"""
        if self.size:
            return round(self.size / (1024 * 1024), 2)
        return None

    def __str__(self):
        return f"{self.resource_type} attachment {self.public_id} for message {self.message_id}"
