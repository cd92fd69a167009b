import datetime
import logging
import uuid

import jwt
import redis
from flask import current_app


logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 15
REFRESH_TOKEN_EXPIRE_DAYS = 7
ACCESS_TOKEN_MAX_AGE = ACCESS_TOKEN_EXPIRE_MINUTES * 60
REFRESH_TOKEN_MAX_AGE = REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60

# Token blocklist; stays None (stateless JWT) unless init_revocation succeeds
redis_client = None
redis_available = False


def init_revocation(redis_url):
    """Connect the token blocklist. Without it tokens simply expire."""
    global redis_client, redis_available
    if not redis_url:
        redis_client = None
        redis_available = False
        logger.info("[Auth] No revocation store configured; running with stateless JWT")
        return False
    try:
        client = redis.from_url(redis_url, socket_connect_timeout=1)
        client.ping()
        redis_client = client
        redis_available = True
        logger.info("[Auth] Redis connected - token revocation enabled")
    except (redis.exceptions.RedisError, OSError) as e:
        redis_client = None
        redis_available = False
        logger.warning("[Auth] Redis not available (%s); running with stateless JWT", e)
    return redis_available


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


def create_tokens(user_id, role):
    """Generate Access and Refresh tokens for a logged-in admin, teacher or student"""
    now = _utcnow()

    access_payload = {
        'sub': str(user_id),
        'role': role,
        'type': 'access',
        'jti': str(uuid.uuid4()),
        'exp': now + datetime.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        'iat': now,
    }

    refresh_payload = {
        'sub': str(user_id),
        'role': role,
        'type': 'refresh',
        'jti': str(uuid.uuid4()),
        'exp': now + datetime.timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        'iat': now,
    }

    secret = current_app.config['SECRET_KEY']
    access_token = jwt.encode(access_payload, secret, algorithm='HS256')
    refresh_token = jwt.encode(refresh_payload, secret, algorithm='HS256')

    return access_token, refresh_token


def decode_token(token):
    """Decode and verify token; None if invalid, expired or revoked"""
    try:
        secret = current_app.config['SECRET_KEY']
        payload = jwt.decode(token, secret, algorithms=['HS256'])
    except jwt.InvalidTokenError:
        # ExpiredSignatureError is a subclass
        return None

    if is_token_revoked(payload['jti']):
        return None
    return payload


def revoke_token(jti, expires_in):
    """Add token JTI to blocklist (only if Redis is available)"""
    if not redis_available:
        return
    try:
        redis_client.setex(f"revoked:{jti}", expires_in, 'true')
    except redis.exceptions.RedisError as e:
        logger.warning("[Auth] Token revocation failed: %s", e)


def is_token_revoked(jti):
    """Check if token is in blocklist (only if Redis is available)"""
    if not redis_available:
        return False
    try:
        return bool(redis_client.exists(f"revoked:{jti}"))
    except redis.exceptions.RedisError as e:
        logger.warning("[Auth] Token revocation check failed: %s", e)
        return False
