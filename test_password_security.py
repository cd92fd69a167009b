"""
Unit tests for password_security module
Tests bcrypt hashing, verification and the legacy plaintext upgrade path
"""
import unittest
from unittest import mock

from password_security import (
    check_password,
    get_hash_info,
    hash_password,
    is_bcrypt_hash,
    needs_rehash,
    verify_password,
)


class TestPasswordHashing(unittest.TestCase):

    def test_basic_hash_and_verify(self):
        """Test basic password hashing and verification"""
        password = "my_secure_password_123"
        hashed = hash_password(password, rounds=4)

        self.assertTrue(hashed.startswith('$2b$'))
        self.assertGreater(len(hashed), 50)

        self.assertTrue(verify_password(password, hashed))
        self.assertFalse(verify_password("wrong_password", hashed))

    def test_empty_password_raises_error(self):
        """Test that empty passwords raise ValueError"""
        with self.assertRaises(ValueError):
            hash_password("")

        with self.assertRaises(ValueError):
            hash_password(None)

    def test_unique_salts(self):
        """Test that same password produces different hashes (unique salts)"""
        password = "same_password"
        hash1 = hash_password(password, rounds=4)
        hash2 = hash_password(password, rounds=4)

        self.assertNotEqual(hash1, hash2)
        self.assertTrue(verify_password(password, hash1))
        self.assertTrue(verify_password(password, hash2))

    def test_special_characters(self):
        """Test passwords with special characters"""
        passwords = [
            "p@ssw0rd!",
            "unicode_密码_🔐",
            "spaces in password",
            "quotes'and\"double",
        ]

        for password in passwords:
            hashed = hash_password(password, rounds=4)
            self.assertTrue(verify_password(password, hashed))
            self.assertFalse(verify_password("WRONG_PASSWORD_123", hashed))

    def test_verify_invalid_hash(self):
        """Invalid hash formats should return False, not raise errors"""
        password = "test"

        self.assertFalse(verify_password(password, ""))
        self.assertFalse(verify_password(password, "invalid_hash"))
        self.assertFalse(verify_password(password, "$2b$invalid"))
        self.assertFalse(verify_password("", "some_hash"))

    def test_hash_info_extraction(self):
        """Test extracting information from hash"""
        hashed = hash_password("info_test", rounds=5)

        info = get_hash_info(hashed)

        self.assertEqual(info['algorithm'], '2b')
        self.assertEqual(info['rounds'], 5)
        self.assertEqual(len(info['salt']), 22)

    def test_needs_rehash(self):
        """Test rehash detection for security upgrades"""
        old_hash = hash_password("rehash_test", rounds=4)

        self.assertTrue(needs_rehash(old_hash, target_rounds=6))
        self.assertFalse(needs_rehash(old_hash, target_rounds=4))
        self.assertTrue(needs_rehash("password123", target_rounds=4))


class TestLoginPasswordCheck(unittest.TestCase):

    def test_legacy_plaintext_matches_and_needs_upgrade(self):
        is_valid, needs_upgrade = check_password("password123", "password123")
        self.assertTrue(is_valid)
        self.assertTrue(needs_upgrade)

    def test_legacy_plaintext_mismatch(self):
        self.assertEqual(check_password("password123", "password124"), (False, False))

    def test_bcrypt_hash_at_target_strength(self):
        hashed = hash_password("s3cret", rounds=4)
        with mock.patch('password_security.BCRYPT_ROUNDS', 4):
            self.assertEqual(check_password(hashed, "s3cret"), (True, False))
            self.assertEqual(check_password(hashed, "nope"), (False, False))

    def test_weak_bcrypt_hash_needs_upgrade(self):
        hashed = hash_password("s3cret", rounds=4)
        with mock.patch('password_security.BCRYPT_ROUNDS', 6):
            self.assertEqual(check_password(hashed, "s3cret"), (True, True))

    def test_missing_password(self):
        self.assertEqual(check_password(None, "x"), (False, False))
        self.assertEqual(check_password("x", ""), (False, False))

    def test_is_bcrypt_hash(self):
        self.assertTrue(is_bcrypt_hash(hash_password("abc", rounds=4)))
        self.assertFalse(is_bcrypt_hash("password123"))
        self.assertFalse(is_bcrypt_hash(None))


if __name__ == '__main__':
    unittest.main(verbosity=2)
