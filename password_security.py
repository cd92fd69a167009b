"""
Password Hashing for Admin, Teacher and Student Logins
bcrypt hashes with a configurable work factor, plus support for the legacy
plaintext passwords found in seed data and older saved rosters
"""
import hmac
import os

import bcrypt


# Bcrypt configuration
# 12 rounds is about 250ms on modern hardware; tests lower it via BCRYPT_ROUNDS
BCRYPT_ROUNDS = int(os.getenv('BCRYPT_ROUNDS', '12'))


def hash_password(plaintext: str, rounds: int = None) -> str:
    """
    Hash a plaintext password using bcrypt with configurable work factor.

    Args:
        plaintext: The plaintext password to hash
        rounds: Number of bcrypt rounds (default: BCRYPT_ROUNDS)

    Returns:
        str: The bcrypt hash as a UTF-8 string, ready to be stored as JSON

    Raises:
        ValueError: If the password is empty
    """
    if not plaintext:
        raise ValueError("Password cannot be empty")

    salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(plaintext.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(plaintext: str, hashed: str) -> bool:
    """
    Verify a plaintext password against a bcrypt hash.

    Returns False (never raises) for empty input or a malformed hash.
    """
    if not plaintext or not hashed:
        return False

    try:
        return bcrypt.checkpw(
            plaintext.encode('utf-8'),
            hashed.encode('utf-8')
        )
    except (ValueError, TypeError):
        # Invalid hash format or encoding issue
        return False


def is_bcrypt_hash(stored: str) -> bool:
    # $2a$, $2b$ and $2y$ are all bcrypt
    return bool(stored) and stored.startswith('$2')


def check_password(stored: str, plaintext: str):
    """
    Check a login password against whatever is stored for the account.

    Args:
        stored: A bcrypt hash, or a legacy plaintext password
        plaintext: The password the user typed

    Returns:
        Tuple (is_valid, needs_upgrade). needs_upgrade is True when the
        password matched a legacy plaintext value or an under-strength hash;
        the caller should store hash_password(plaintext) in its place.
    """
    if not stored or not plaintext:
        return False, False

    if is_bcrypt_hash(stored):
        is_valid = verify_password(plaintext, stored)
        return is_valid, is_valid and needs_rehash(stored)

    # Legacy plaintext, compared in constant time
    is_valid = hmac.compare_digest(stored.encode('utf-8'), plaintext.encode('utf-8'))
    return is_valid, is_valid


def get_hash_info(hashed: str) -> dict:
    """
    Extract information from a bcrypt hash.

    Example:
        >>> info = get_hash_info('$2b$12$...')
        >>> print(info)
        {'algorithm': '2b', 'rounds': 12, 'salt': '...', 'hash': '...'}
    """
    try:
        parts = hashed.split('$')
        if len(parts) >= 4:
            return {
                'algorithm': parts[1],
                'rounds': int(parts[2]),
                'salt': parts[3][:22] if len(parts[3]) >= 22 else parts[3],
                'hash': parts[3][22:] if len(parts[3]) > 22 else '',
            }
    except (AttributeError, IndexError, ValueError):
        pass

    return {'error': 'Invalid hash format'}


def needs_rehash(hashed: str, target_rounds: int = None) -> bool:
    """
    Check if a password hash needs to be rehashed with more rounds.

    Example:
        >>> old_hash = hash_password("password", rounds=10)
        >>> needs_rehash(old_hash, target_rounds=12)
        True
    """
    info = get_hash_info(hashed)
    if 'rounds' in info:
        return info['rounds'] < (target_rounds or BCRYPT_ROUNDS)
    return True  # If we can't parse it, assume it needs rehashing
