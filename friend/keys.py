import hashlib
import hmac
from datetime import datetime, timezone
from typing import Tuple


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision, e.g. 2023-02-10T00:50:43.000Z"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def hash_key(value: str, salt_a: str, salt_b: str, secret: str) -> str:
    message = f"{salt_a}{value}{salt_b}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha512).hexdigest()


def ordered_pair(first: str, second: str) -> Tuple[str, str]:
    """The one place a pair of users is put in lexicographic order."""
    if first < second:
        return first, second
    return second, first


def canonical_pair_key(first: str, second: str, secret: str) -> str:
    email1, email2 = ordered_pair(first, second)
    return hash_key(f"{email1}/{email2}", email1, email2, secret)


def request_key(sender: str, receiver: str, created_at: datetime, secret: str) -> str:
    return hash_key(
        f"{sender}/{receiver}/{format_timestamp(created_at)}", sender, receiver, secret
    )
