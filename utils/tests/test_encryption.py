from unittest.mock import patch

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from utils import encryption
from utils.encryption import (
    AuthenticationFailed,
    MalformedEnvelope,
    decrypt_text,
    encrypt_text,
    to_wellformed_text,
)


def _flip_first_bit(hex_field):
    raw = bytearray(bytes.fromhex(hex_field))
    raw[0] ^= 0x01
    return raw.hex()


class EncryptTextTest(SimpleTestCase):

    def test_round_trip(self):
        """Test that decrypting an envelope returns the original text."""
        for text in ["hello", "Can you start tomorrow at 9?", "emoji ☕ and accents é", "x" * 5000]:
            self.assertEqual(decrypt_text(encrypt_text(text)), text)

    def test_lone_surrogate_is_replaced(self):
        """Test that unpaired surrogates are stored as U+FFFD instead of failing to encode."""
        self.assertEqual(decrypt_text(encrypt_text("a\ud800b")), "a\ufffdb")
        self.assertEqual(to_wellformed_text("\udfff"), "\ufffd")
        self.assertEqual(to_wellformed_text("emoji \U0001f600"), "emoji \U0001f600")

    def test_empty_text_has_no_envelope(self):
        """Test that empty or missing text produces no envelope."""
        self.assertIsNone(encrypt_text(""))
        self.assertIsNone(encrypt_text(None))
        self.assertIsNone(decrypt_text(""))
        self.assertIsNone(decrypt_text(None))

    def test_envelope_format(self):
        """Test envelope is nonce:tag:ciphertext in hex with a 96-bit nonce and 128-bit tag."""
        envelope = encrypt_text("hello")
        nonce, tag, ciphertext = envelope.split(":")

        self.assertEqual(len(nonce), 24)
        self.assertEqual(len(tag), 32)
        self.assertEqual(len(ciphertext), len("hello") * 2)
        self.assertNotIn("hello", envelope)

    def test_nonce_is_fresh_per_call(self):
        """Test that encrypting the same text twice never reuses a nonce."""
        first = encrypt_text("same text")
        second = encrypt_text("same text")

        self.assertNotEqual(first.split(":")[0], second.split(":")[0])
        self.assertNotEqual(first, second)


class DecryptTextTest(SimpleTestCase):

    def test_wrong_field_count_is_malformed(self):
        with self.assertRaises(MalformedEnvelope):
            decrypt_text("abcd:ef01")
        with self.assertRaises(MalformedEnvelope):
            decrypt_text("aa:bb:cc:dd")

    def test_non_hex_field_is_malformed(self):
        nonce, tag, ciphertext = encrypt_text("hello").split(":")
        with self.assertRaises(MalformedEnvelope):
            decrypt_text(f"{nonce}:{tag}:not-hex")

    def test_wrong_nonce_length_is_malformed(self):
        _, tag, ciphertext = encrypt_text("hello").split(":")
        with self.assertRaises(MalformedEnvelope):
            decrypt_text(f"abcd:{tag}:{ciphertext}")

    def test_flipped_ciphertext_bit_fails_authentication(self):
        """Test that tampered ciphertext is rejected instead of decrypting to the wrong text."""
        nonce, tag, ciphertext = encrypt_text("hello").split(":")
        with self.assertRaises(AuthenticationFailed):
            decrypt_text(f"{nonce}:{tag}:{_flip_first_bit(ciphertext)}")

    def test_flipped_tag_bit_fails_authentication(self):
        nonce, tag, ciphertext = encrypt_text("hello").split(":")
        with self.assertRaises(AuthenticationFailed):
            decrypt_text(f"{nonce}:{_flip_first_bit(tag)}:{ciphertext}")

    def test_envelope_from_other_key_fails_authentication(self):
        envelope = encrypt_text("hello")
        with patch.object(encryption, "_key", b"\x00" * 32):
            with self.assertRaises(AuthenticationFailed):
                decrypt_text(envelope)


class KeyDerivationTest(SimpleTestCase):

    def test_key_is_derived_once(self):
        """Test that the key is derived on first use and cached for later calls."""
        with patch.object(encryption, "_key", None), \
                patch.object(encryption, "_derive_key", wraps=encryption._derive_key) as derive:
            first = encryption.get_key()
            second = encryption.get_key()
            encrypt_text("one")
            encrypt_text("two")

        self.assertIs(first, second)
        self.assertEqual(len(first), 32)
        derive.assert_called_once()

    def test_same_secret_derives_same_key(self):
        self.assertEqual(encryption._derive_key("secret"), encryption._derive_key("secret"))
        self.assertNotEqual(encryption._derive_key("secret"), encryption._derive_key("other"))

    @override_settings(CHAT_ENCRYPTION_SECRET="")
    def test_missing_secret_is_a_configuration_error(self):
        with patch.object(encryption, "_key", None):
            with self.assertRaises(ImproperlyConfigured):
                encrypt_text("hello")
