import os
import uuid

from django.conf import settings


def get_chat_attachment_path(filename):
    """Storage path for a chat attachment; the original name is kept on the row, not the path."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    filename = f"{uuid.uuid4().hex}.{ext}"
    return os.path.join(settings.ATTACHMENT_UPLOAD_DIR, filename)
