"""Decoding of Guardian push payloads captured from FCM or an SNS/SQS relay.

Guardian push data carries the challenge under ``c`` and the transaction
token under ``txtkn``. Payloads may arrive bare, wrapped in an FCM ``data``
member, or inside an SNS ``Notification`` envelope whose ``Message`` is JSON
text.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import InvalidPushMessage

__all__ = ["PushNotification", "parse_push_message", "unwrap_sns_envelope"]

CHALLENGE_KEY = "c"
TRANSACTION_TOKEN_KEY = "txtkn"


@dataclass(frozen=True, slots=True)
class PushNotification:
    challenge: str
    transaction_token: str
    extra: Mapping[str, Any] = field(default_factory=dict)


def _as_mapping(body: Any) -> Mapping[str, Any]:
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidPushMessage(f"push message is not UTF-8: {exc}") from exc
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except ValueError as exc:
            raise InvalidPushMessage(f"push message is not JSON: {exc}") from exc
    if not isinstance(body, Mapping):
        raise InvalidPushMessage("push message must be a JSON object")
    return body


def unwrap_sns_envelope(body: Any) -> Mapping[str, Any]:
    data = _as_mapping(body)
    kind = data.get("Type")
    if kind == "SubscriptionConfirmation":
        raise InvalidPushMessage(
            f"SNS subscription confirmation required, visit {data.get('SubscribeURL') or '<missing SubscribeURL>'}"
        )
    if kind == "Notification":
        return _as_mapping(data.get("Message") or "")
    return data


def parse_push_message(body: Any) -> PushNotification:
    data = unwrap_sns_envelope(body)
    inner = data.get("data")
    if isinstance(inner, Mapping):
        data = inner
    challenge = data.get(CHALLENGE_KEY)
    token = data.get(TRANSACTION_TOKEN_KEY)
    if not isinstance(challenge, str) or not challenge:
        raise InvalidPushMessage(f"push message has no challenge ('{CHALLENGE_KEY}')")
    if not isinstance(token, str) or not token:
        raise InvalidPushMessage(f"push message has no transaction token ('{TRANSACTION_TOKEN_KEY}')")
    extra = {k: v for k, v in data.items() if k not in (CHALLENGE_KEY, TRANSACTION_TOKEN_KEY)}
    return PushNotification(challenge=challenge, transaction_token=token, extra=extra)
