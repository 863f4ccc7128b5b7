"""Remote quota check against the Anthropic API.

A one-token request is sent with the user's Claude Code OAuth token. The
body is ignored; utilization, reset times and the allow/deny status come
from the ``anthropic-ratelimit-unified-*`` response headers.
"""

import asyncio
import json
import logging
import time
from datetime import UTC, datetime
from pathlib import Path

import httpx

from .config import (
    ANTHROPIC_UPSTREAM,
    ANTHROPIC_VERSION,
    CONNECT_TIMEOUT,
    CREDENTIALS_PATH,
    OAUTH_BETA,
    OVERALL_TIMEOUT,
    QUOTA_MODEL,
)
from .errors import CredentialError, RemoteError
from .models import QuotaSnapshot

logger = logging.getLogger("claudestatus")

HEADER_PREFIX = "anthropic-ratelimit-unified-"
DENIED_STATUSES = frozenset(["denied", "rejected"])
WARNING_UTILIZATION = 0.75


def read_credentials(path=None) -> str:
    """Return the OAuth access token from Claude Code's credentials file."""
    cred_path = Path(path) if path else CREDENTIALS_PATH
    try:
        creds = json.loads(cred_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CredentialError(f"credentials file not found: {cred_path}") from e
    except (OSError, ValueError) as e:
        raise CredentialError(f"cannot read credentials file {cred_path}: {e}") from e

    oauth = creds.get("claudeAiOauth") if isinstance(creds, dict) else None
    token = oauth.get("accessToken") if isinstance(oauth, dict) else None
    if not isinstance(token, str) or not token:
        raise CredentialError("no OAuth access token found in credentials file")
    return token


def _parse_float(value: str | None) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except ValueError:
        return 0.0


def parse_reset(value: str | None, now: float | None = None) -> float:
    """Seconds until a reset given as epoch seconds or an ISO-8601 string, floored at 0."""
    if not value:
        return 0.0
    now = time.time() if now is None else now
    value = value.strip()
    try:
        reset_at = float(value)
    except ValueError:
        try:
            ts = datetime.fromisoformat(value)
        except ValueError:
            logger.debug("Unparseable reset header %r", value)
            return 0.0
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=UTC)
        reset_at = ts.timestamp()
    return max(0.0, reset_at - now)


def _is_denied(headers) -> bool:
    for window in ("", "5h-", "7d-"):
        status = headers.get(f"{HEADER_PREFIX}{window}status")
        if status and status.strip().lower() in DENIED_STATUSES:
            return True
    allowed = headers.get(f"{HEADER_PREFIX}allowed")
    return allowed is not None and allowed.strip().lower() == "false"


def parse_quota_headers(headers, now: float | None = None) -> QuotaSnapshot:
    """Build a QuotaSnapshot from rate-limit response headers."""
    util_5h = _parse_float(headers.get(f"{HEADER_PREFIX}5h-utilization"))
    util_7d = _parse_float(headers.get(f"{HEADER_PREFIX}7d-utilization"))

    if _is_denied(headers):
        status = "denied"
    elif util_5h >= WARNING_UTILIZATION or util_7d >= WARNING_UTILIZATION:
        status = "allowed_warning"
    else:
        status = "allowed"

    return QuotaSnapshot(
        utilization_5h=util_5h,
        utilization_7d=util_7d,
        reset_in_5h=parse_reset(headers.get(f"{HEADER_PREFIX}5h-reset"), now),
        reset_in_7d=parse_reset(headers.get(f"{HEADER_PREFIX}7d-reset"), now),
        limit_status=status,
    )


class QuotaClient:
    """Issues the quota check request. One instance holds one pooled httpx client."""

    def __init__(self, credentials_path=None, base_url: str = ANTHROPIC_UPSTREAM, client: httpx.AsyncClient | None = None):
        self.credentials_path = credentials_path
        self.base_url = base_url.rstrip("/")
        self._client = client

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(OVERALL_TIMEOUT, connect=CONNECT_TIMEOUT),
            )
        return self._client

    async def fetch(self) -> QuotaSnapshot:
        """Fetch the current quota state.

        Raises ``CredentialError`` when there is no usable token or the API
        rejects it, and ``RemoteError`` for any other failure.
        """
        token = await asyncio.to_thread(read_credentials, self.credentials_path)
        client = await self.get_client()
        url = f"{self.base_url}/v1/messages"
        try:
            resp = await client.post(
                url,
                headers={
                    "authorization": f"Bearer {token}",
                    "anthropic-version": ANTHROPIC_VERSION,
                    "anthropic-beta": OAUTH_BETA,
                    "content-type": "application/json",
                },
                json={
                    "model": QUOTA_MODEL,
                    "max_tokens": 1,
                    "messages": [{"role": "user", "content": "."}],
                },
            )
        except httpx.TimeoutException as e:
            raise RemoteError(f"quota check timed out: {url}") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"cannot reach {url}: {e}") from e

        if resp.status_code in (401, 403):
            raise CredentialError(f"OAuth token rejected ({resp.status_code})")
        # 429 responses still carry the rate-limit headers we are after
        if resp.status_code >= 400 and resp.status_code != 429:
            raise RemoteError(f"quota check failed with HTTP {resp.status_code}")

        snapshot = parse_quota_headers(resp.headers)
        logger.info(
            "QUOTA 5h=%.0f%% 7d=%.0f%% status=%s",
            snapshot.utilization_5h * 100,
            snapshot.utilization_7d * 100,
            snapshot.limit_status,
        )
        return snapshot

    async def aclose(self):
        if self._client:
            await self._client.aclose()
            self._client = None
