import hashlib
import hmac
import json
import logging
import secrets

import textstat
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone
from datetime import timezone as dt_timezone

logger = logging.getLogger(__name__)


# ============================================
# AI response cache
# ============================================
AI_CACHE_PREFIX = "ai:"
AI_CACHE_KEYS = "ai_cache:keys"
AI_CACHE_HITS = "ai_cache:hits"
AI_CACHE_MISSES = "ai_cache:misses"


def build_ai_cache_key(operation, payload):
    """MD5 of the operation name plus the request payload, with sorted keys."""
    raw = json.dumps({"operation": operation, "payload": payload}, sort_keys=True, default=str)
    return f"{AI_CACHE_PREFIX}{hashlib.md5(raw.encode('utf-8')).hexdigest()}"


def _increment(counter):
    # cache.incr raises ValueError when the key is missing
    if not cache.add(counter, 1, timeout=None):
        try:
            cache.incr(counter)
        except ValueError:
            cache.set(counter, 1, timeout=None)


def _register_key(key):
    keys = cache.get(AI_CACHE_KEYS) or []
    if key not in keys:
        keys.append(key)
        cache.set(AI_CACHE_KEYS, keys, timeout=None)


def cached_ai_response(operation, payload, producer):
    """
    Returns (data, from_cache). On a miss, calls producer() and stores its
    result for AI_CACHE_TTL seconds. Exceptions from producer() propagate
    and nothing is cached.
    """
    key = build_ai_cache_key(operation, payload)
    data = cache.get(key)

    if data is not None:
        _increment(AI_CACHE_HITS)
        logger.debug(f"AI cache hit for {operation} ({key})")
        return data, True

    _increment(AI_CACHE_MISSES)
    data = producer()

    cache.set(key, data, timeout=settings.AI_CACHE_TTL)
    _register_key(key)
    return data, False


def get_ai_cache_stats():
    hits = cache.get(AI_CACHE_HITS) or 0
    misses = cache.get(AI_CACHE_MISSES) or 0
    registered = cache.get(AI_CACHE_KEYS) or []

    # Entries expire on their own, so only count the ones still present
    live_keys = [key for key in registered if cache.get(key) is not None]
    if len(live_keys) != len(registered):
        cache.set(AI_CACHE_KEYS, live_keys, timeout=None)

    total = hits + misses
    return {
        "hits": hits,
        "misses": misses,
        "keys": len(live_keys),
        "hitRate": round(hits / total * 100, 2) if total else 0,
    }


def flush_ai_cache():
    """Deletes every AI entry and resets the counters. Returns the number of keys removed."""
    keys = cache.get(AI_CACHE_KEYS) or []
    cache.delete_many(keys + [AI_CACHE_KEYS, AI_CACHE_HITS, AI_CACHE_MISSES])
    logger.info(f"AI cache flushed ({len(keys)} keys)")
    return len(keys)


def delete_ai_cache_key(key):
    """Removes one AI entry. Returns False when the key is not cached."""
    if not key.startswith(AI_CACHE_PREFIX) or cache.get(key) is None:
        return False

    cache.delete(key)
    keys = [k for k in (cache.get(AI_CACHE_KEYS) or []) if k != key]
    cache.set(AI_CACHE_KEYS, keys, timeout=None)
    return True


# ============================================
# Readability stats for generated text
# ============================================
def readability_stats(text):
    if not text or not isinstance(text, str):
        return None

    return {
        "fleschReadingEase": textstat.flesch_reading_ease(text),
        "gradeLevel": textstat.flesch_kincaid_grade(text),
        "wordCount": textstat.lexicon_count(text),
        "readingTimeSeconds": textstat.reading_time(text),
    }


def add_readability(data, fields=("content", "description", "subheadline", "quote")):
    """Attaches readability stats for the long-form text fields of an AI payload."""
    if not isinstance(data, dict):
        return data

    stats = {
        field: readability_stats(data[field])
        for field in fields
        if isinstance(data.get(field), str) and data[field].strip()
    }
    if stats:
        data = {**data, "readability": stats}
    return data


# ============================================
# Tokens, versions and signatures
# ============================================
def generate_token(nbytes=32):
    return secrets.token_hex(nbytes)


def build_version(now=None):
    """Deployment version in the form YYYY.MM.DD.HH.mm (UTC)."""
    now = now or timezone.now()
    return now.astimezone(dt_timezone.utc).strftime("%Y.%m.%d.%H.%M")


def get_webhook_secret(source=None):
    if source:
        specific = settings.WEBHOOK_SOURCE_SECRETS.get(source.lower())
        if specific:
            return specific
    return settings.WEBHOOK_SECRET


def verify_webhook_signature(raw_body, signature, source=None):
    """
    Checks an HMAC-SHA256 signature over the raw request body.
    A 'sha256=' prefix on the signature is accepted.
    """
    secret = get_webhook_secret(source)

    if not secret:
        if settings.DEVELOPMENT_MODE:
            logger.warning("Webhook secret not configured, accepting unsigned webhook in development mode")
            return True
        logger.error("Webhook secret not configured, rejecting webhook")
        return False

    if not signature:
        return False

    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]

    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)
