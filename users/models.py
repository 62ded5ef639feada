from django.db import models


class User(models.Model):
    """Local directory entry for an account owned by the authentication service."""
    user_id = models.CharField(max_length=100, unique=True, primary_key=True)
    user_name = models.CharField(max_length=100)
    email = models.EmailField(max_length=255, null=True, blank=True)
    avatar_url = models.URLField(max_length=500, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['user_name'], name='users_user_name_idx'),
            models.Index(fields=['email'], name='users_email_idx'),
        ]

    def __str__(self):
        return f"{self.user_name} ({self.user_id})"
