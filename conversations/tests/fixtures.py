from conversations.models import Conversation
from marketplace.models import Application, Task
from users.models import User


class ChatFixturesMixin:
    """Builds users, a task and an accepted application; the acceptance opens the conversation."""

    def create_user(self, user_id, name=None):
        user, _ = User.objects.get_or_create(
            user_id=user_id,
            defaults={
                'user_name': name or f"User {user_id}",
                'email': f"{user_id}@example.com",
                'avatar_url': f"https://cdn.example.com/avatars/{user_id}.png",
            },
        )
        return user

    def create_conversation(self, owner_id="owner-1", applicant_id="worker-1",
                            task_status=Task.STATUS_IN_PROGRESS, title="Fix the kitchen sink"):
        owner = self.create_user(owner_id)
        applicant = self.create_user(applicant_id)
        task = Task.objects.create(
            title=title,
            status=task_status,
            uploaded_by=owner,
            assigned_to=applicant,
        )
        application = Application.objects.create(
            task=task,
            applicant=applicant,
            status=Application.STATUS_ACCEPTED,
        )
        return Conversation.objects.get(application=application)
