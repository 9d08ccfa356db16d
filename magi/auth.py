"""Gateway authentication: per-minute digest token and signed connection URL."""

import hashlib
import time
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def minute_bucket(now: float | None = None) -> int:
    return int(now if now is not None else time.time()) // 60


def auth_token(app_id: str, app_secret: str, bucket: int, length: int = 10) -> str:
    """Hex sha256 of app_id + secret + minute bucket, truncated to `length` chars."""
    raw = f"{app_id}{app_secret}{bucket}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:length]


def signed_url(base_url: str, app_id: str, app_secret: str, bucket: int, length: int = 10) -> str:
    """Append appid/token query parameters, keeping any existing ones."""
    parts = urlsplit(base_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query += [("appid", app_id), ("token", auth_token(app_id, app_secret, bucket, length))]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))
