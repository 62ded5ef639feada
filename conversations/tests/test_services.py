from unittest.mock import MagicMock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase

from conversations.models import Conversation
from conversations.services import ChatService
from dmessages.models import Message
from taskhub.exceptions import Forbidden, StoreFailure, ValidationError
from utils.attachment_storage import AttachmentUploadError, StoredObject
from utils.encryption import encrypt_text

from .fixtures import ChatFixturesMixin


def _fake_storage():
    storage = MagicMock()
    counter = iter(range(1, 100))

    def store(content, filename, mime_type):
        public_id = f"chat_attachments/{next(counter)}-{filename}"
        return StoredObject(url=f"/media/{public_id}", public_id=public_id, resource_type="image")

    storage.store.side_effect = store
    return storage


class SendMessageTest(ChatFixturesMixin, TestCase):

    def setUp(self):
        self.conversation = self.create_conversation("owner-1", "worker-1")
        self.storage = _fake_storage()
        self.service = ChatService(storage=self.storage)

    def test_text_is_encrypted_at_rest(self):
        """Test that the stored envelope differs from the text and the sender gets the plaintext back."""
        message = self.service.send_message(self.conversation.pk, "owner-1", text="hello")

        stored = Message.objects.get(pk=message.pk)
        self.assertIsNotNone(stored.encrypted_text)
        self.assertNotEqual(stored.encrypted_text, "hello")
        self.assertNotIn("hello", stored.encrypted_text)
        self.assertEqual(message.text, "hello")
        self.assertEqual(stored.sender_id, "owner-1")
        self.assertFalse(stored.is_read)

    def test_send_updates_last_message_at(self):
        message = self.service.send_message(self.conversation.pk, "worker-1", text="On my way")

        self.conversation.refresh_from_db()
        self.assertIsNotNone(self.conversation.last_message_at)
        self.assertGreaterEqual(self.conversation.last_message_at, message.created_at)

    def test_empty_message_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.service.send_message(self.conversation.pk, "owner-1", text="")

        self.assertEqual(Message.objects.count(), 0)
        self.storage.store.assert_not_called()

    def test_attachment_only_message(self):
        photo = SimpleUploadedFile("leak.png", b"\x89PNG fake", content_type="image/png")

        message = self.service.send_message(self.conversation.pk, "owner-1", uploads=[photo])

        stored = Message.objects.get(pk=message.pk)
        self.assertIsNone(stored.encrypted_text)
        self.assertIsNone(message.text)
        attachment = stored.attachments.get()
        self.assertEqual(attachment.filename, "leak.png")
        self.assertEqual(attachment.mime_type, "image/png")
        self.assertEqual(attachment.size, len(b"\x89PNG fake"))
        self.assertEqual(attachment.resource_type, "image")
        self.assertTrue(attachment.public_id.startswith("chat_attachments/"))

    def test_attachments_keep_upload_order(self):
        uploads = [SimpleUploadedFile(f"photo{i}.png", b"img", content_type="image/png") for i in range(3)]

        message = self.service.send_message(self.conversation.pk, "owner-1", text="pics", uploads=uploads)

        self.assertEqual(
            list(message.attachments.values_list("filename", flat=True)),
            ["photo0.png", "photo1.png", "photo2.png"],
        )

    def test_unauthorized_sender_uploads_nothing(self):
        self.create_user("stranger-1")
        photo = SimpleUploadedFile("a.png", b"img", content_type="image/png")

        with self.assertRaises(Forbidden):
            self.service.send_message(self.conversation.pk, "stranger-1", text="hi", uploads=[photo])

        self.storage.store.assert_not_called()

    def test_failed_upload_discards_stored_objects(self):
        self.storage.store.side_effect = [
            StoredObject(url="/media/chat_attachments/1.png", public_id="chat_attachments/1.png",
                         resource_type="image"),
            AttachmentUploadError("store down"),
        ]
        uploads = [SimpleUploadedFile(f"p{i}.png", b"img", content_type="image/png") for i in range(2)]

        with self.assertRaises(StoreFailure):
            self.service.send_message(self.conversation.pk, "owner-1", text="hi", uploads=uploads)

        self.storage.delete.assert_called_once_with("chat_attachments/1.png", "image")
        self.assertEqual(Message.objects.count(), 0)


class ListMessagesTest(ChatFixturesMixin, TestCase):

    def setUp(self):
        self.conversation = self.create_conversation("owner-1", "worker-1")
        self.service = ChatService(storage=_fake_storage())

    def test_messages_are_decrypted_with_recipient(self):
        self.service.send_message(self.conversation.pk, "owner-1", text="hello")
        self.service.send_message(self.conversation.pk, "worker-1", text="hi there")

        recipient, messages = self.service.list_messages(self.conversation.pk, "owner-1")

        self.assertEqual(recipient.user_id, "worker-1")
        self.assertEqual([m.text for m in messages], ["hello", "hi there"])
        self.assertTrue(all(m.is_decryptable for m in messages))

    def test_one_bad_envelope_does_not_fail_the_page(self):
        """Test a corrupted message renders as undecryptable while the rest of the page decrypts."""
        Message.objects.append(self.conversation, "owner-1", encrypt_text("first"))
        broken = Message.objects.append(self.conversation, "owner-1", encrypt_text("second"))
        Message.objects.append(self.conversation, "worker-1", encrypt_text("third"))
        nonce, tag, ciphertext = broken.encrypted_text.split(":")
        Message.objects.filter(pk=broken.pk).update(encrypted_text=f"{nonce}:{'0' * 32}:{ciphertext}")
        Message.objects.append(self.conversation, "worker-1", "only:two")

        _, messages = self.service.list_messages(self.conversation.pk, "worker-1")

        self.assertEqual([m.text for m in messages], ["first", None, "third", None])
        self.assertEqual([m.is_decryptable for m in messages], [True, False, True, False])

    def test_non_participant_is_forbidden(self):
        self.create_user("stranger-1")

        with self.assertRaises(Forbidden):
            self.service.list_messages(self.conversation.pk, "stranger-1")


class ListConversationsTest(ChatFixturesMixin, TestCase):

    def test_other_user_is_resolved_per_conversation(self):
        first = self.create_conversation("owner-1", "worker-1")
        second = self.create_conversation("worker-2", "owner-1")

        conversations = ChatService(storage=_fake_storage()).list_conversations("owner-1")

        others = {c.pk: c.other_user.user_id for c in conversations}
        self.assertEqual(others, {first.pk: "worker-1", second.pk: "worker-2"})

    def test_closed_conversations_are_hidden(self):
        conversation = self.create_conversation("owner-1", "worker-1")
        Conversation.objects.filter(pk=conversation.pk).update(status=Conversation.STATUS_CLOSED)

        self.assertEqual(ChatService(storage=_fake_storage()).list_conversations("owner-1"), [])


class MarkReadTest(ChatFixturesMixin, TestCase):

    def test_marks_only_messages_from_the_other_participant(self):
        conversation = self.create_conversation("owner-1", "worker-1")
        service = ChatService(storage=_fake_storage())
        service.send_message(conversation.pk, "owner-1", text="one")
        service.send_message(conversation.pk, "worker-1", text="two")
        service.send_message(conversation.pk, "worker-1", text="three")

        self.assertEqual(service.mark_read(conversation.pk, "owner-1"), 2)
        self.assertEqual(service.mark_read(conversation.pk, "owner-1"), 0)
        self.assertEqual(Message.objects.filter(is_read=False).get().sender_id, "owner-1")

    def test_unread_count_without_a_query_per_conversation(self):
        """Test that listing costs the same queries however many conversations have unread messages."""
        service = ChatService(storage=_fake_storage())
        for worker_id in ["worker-1", "worker-2", "worker-3"]:
            conversation = self.create_conversation("owner-1", worker_id)
            Message.objects.append(conversation, worker_id, encrypt_text("ping"))

        with self.assertNumQueries(3):
            conversations = service.list_conversations("owner-1")
            counts = [c.unread_count for c in conversations]
            others = {c.other_user.user_id for c in conversations}

        self.assertEqual(counts, [1, 1, 1])
        self.assertEqual(others, {"worker-1", "worker-2", "worker-3"})
