"""Slack request-signature verification.

Every inbound webhook request carries ``X-Slack-Request-Timestamp`` and
``X-Slack-Signature`` headers. The signature is
``"v0=" + hex(HMAC-SHA256(secret, "v0:<timestamp>:<body>"))`` and requests
older than five minutes are rejected to prevent replay.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from urllib.parse import quote_plus, urlencode

from slack_sdk.signature import Clock, SignatureVerifier

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_HEADER = "X-Slack-Signature"


def canonical_body(body: str | bytes | Mapping) -> str | bytes:
    """Return the exact string Slack signed for *body*.

    Raw bodies are used verbatim. An already-decoded body is re-serialised:
    handshake payloads as JSON, everything else as an RFC1738 form
    (spaces encoded as ``+``).
    """
    if isinstance(body, (str, bytes)):
        return body
    if body.get("type") == "url_verification":
        return json.dumps(dict(body), separators=(",", ":"))
    return urlencode(dict(body), quote_via=quote_plus)


def verify_request(
    signing_secret: str,
    body: str | bytes | Mapping | None,
    timestamp: str | None,
    signature: str | None,
    *,
    clock: Clock | None = None,
) -> bool:
    """Return True only for a fresh request signed with *signing_secret*.

    Never raises: anything unexpected while parsing or comparing counts as
    an invalid request.
    """
    if not body:
        logger.info("Rejected request: empty body")
        return False
    if not signing_secret or not timestamp or not signature:
        logger.info("Rejected request: missing signature headers")
        return False

    try:
        int(timestamp)
        verifier = SignatureVerifier(signing_secret, clock=clock or Clock())
        valid = verifier.is_valid(
            body=canonical_body(body), timestamp=timestamp, signature=signature
        )
    except Exception as exc:
        logger.info("Rejected request: %s while verifying signature", type(exc).__name__)
        return False

    if not valid:
        logger.info("Rejected request: signature mismatch or stale timestamp %s", timestamp)
    return valid


def verify_headers(signing_secret: str, body: str | bytes, headers: Mapping[str, str]) -> bool:
    """Convenience wrapper reading the Slack headers from a header mapping."""
    return verify_request(
        signing_secret,
        body,
        headers.get(TIMESTAMP_HEADER) or headers.get(TIMESTAMP_HEADER.lower()),
        headers.get(SIGNATURE_HEADER) or headers.get(SIGNATURE_HEADER.lower()),
    )
