import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from conversations.models import Conversation
from marketplace.models import Application

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Application)
def open_conversation_on_acceptance(sender, instance: Application, created: bool, **kwargs):
    """
    Open the chat between the task owner and the applicant once an application is accepted.

    Creation is idempotent, so saving an accepted application again does not
    create a second conversation.
    """
    if instance.status != Application.STATUS_ACCEPTED:
        return

    conversation, opened = Conversation.objects.open_for_application(instance)
    if opened:
        logger.info(f"Opened conversation {conversation.pk} for application {instance.pk}")
