import uuid

from django.db import models, transaction
from django.db.models import Count, F, Q

from utils.timestamps import parse_timestamp


class ConversationQuerySet(models.QuerySet):

    def for_user(self, user_id, updated_since=None):
        """
        Active conversations of a user, most recently active first.

        ``updated_since`` drives incremental polling: when it parses as a
        timestamp only conversations with a newer message or any newer change
        are returned. Unparsable values are ignored.
        """
        queryset = self.filter(participants=user_id, status=Conversation.STATUS_ACTIVE)

        since = parse_timestamp(updated_since)
        if since is not None:
            queryset = queryset.filter(Q(last_message_at__gt=since) | Q(updated_at__gt=since))

        return queryset.order_by(F('last_message_at').desc(nulls_last=True), '-updated_at')

    def unread_count_for(self, user_id):
        """Annotate ``unread_count``: messages from the other participant that ``user_id`` has not read."""
        return self.annotate(unread_count=Count(
            'messages',
            filter=Q(messages__is_read=False) & ~Q(messages__sender_id=user_id),
            distinct=True,
        ))

    def touch_last_message_at(self, conversation_id, timestamp):
        # update() skips auto_now, so updated_at is set explicitly
        return self.filter(pk=conversation_id).update(last_message_at=timestamp, updated_at=timestamp)

    def open_for_application(self, application):
        """
        Get or create the conversation for an accepted application.

        Participants are the task uploader followed by the applicant.
        """
        with transaction.atomic():
            conversation, created = self.get_or_create(
                application=application,
                defaults={'task': application.task},
            )
            if created:
                ConversationParticipant._default_manager.bulk_create([
                    ConversationParticipant(
                        conversation=conversation, user_id=application.task.uploaded_by_id, position=0
                    ),
                    ConversationParticipant(
                        conversation=conversation, user_id=application.applicant_id, position=1
                    ),
                ])
        return conversation, created


class Conversation(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_CLOSED = "closed"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_CLOSED, "Closed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # NULL once the task row is gone; the chat guard reports it as a missing task
    task = models.ForeignKey(
        'marketplace.Task', on_delete=models.SET_NULL, related_name='conversations', null=True
    )
    application = models.OneToOneField(
        'marketplace.Application', on_delete=models.SET_NULL, related_name='conversation', null=True
    )
    participants = models.ManyToManyField(
        'users.User', through='ConversationParticipant', related_name='conversations'
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    last_message_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ConversationQuerySet.as_manager()

    class Meta:
        db_table = 'conversations_conversation'

    def __str__(self):
        return f"Conversation {self.pk}"

    @property
    def participant_ids(self):
        return [link.user_id for link in self.participant_links.all()]

    def other_participant_id(self, user_id):
        return resolve_other_participant(self, user_id)


class ConversationParticipant(models.Model):
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name='participant_links')
    user = models.ForeignKey('users.User', on_delete=models.CASCADE, related_name='conversation_links')
    position = models.PositiveSmallIntegerField()

    class Meta:
        db_table = 'conversations_participant'
        ordering = ['position']
        constraints = [
            models.UniqueConstraint(fields=['conversation', 'user'], name='unique_conversation_participant'),
            models.UniqueConstraint(fields=['conversation', 'position'], name='unique_conversation_position'),
        ]

    def __str__(self):
        return f"{self.user_id} in {self.conversation_id}"


def resolve_other_participant(conversation, user_id):
    """Return the id of the participant that is not ``user_id``."""
    for participant_id in conversation.participant_ids:
        if participant_id != user_id:
            return participant_id
    return None
