from __future__ import annotations

import json

import pytest

from guardian_shell.services.mfa.errors import InvalidPushMessage
from guardian_shell.services.mfa.notifications import parse_push_message

DATA = {"c": "chal1", "txtkn": "txtkn-1", "dai": "dev_x1", "sh": "tenant.guardian.auth0.com"}


def test_bare_data_mapping():
    notification = parse_push_message(DATA)
    assert notification.challenge == "chal1"
    assert notification.transaction_token == "txtkn-1"
    assert notification.extra == {"dai": "dev_x1", "sh": "tenant.guardian.auth0.com"}


def test_fcm_data_member_as_bytes():
    raw = json.dumps({"data": DATA, "from": "1234"}).encode("utf-8")
    assert parse_push_message(raw).challenge == "chal1"


def test_sns_notification_envelope():
    envelope = {"Type": "Notification", "MessageId": "m-1", "Message": json.dumps({"data": DATA})}
    notification = parse_push_message(json.dumps(envelope))
    assert notification.transaction_token == "txtkn-1"


def test_sns_subscription_confirmation_is_rejected():
    envelope = {"Type": "SubscriptionConfirmation", "SubscribeURL": "https://sns.example/confirm"}
    with pytest.raises(InvalidPushMessage) as excinfo:
        parse_push_message(envelope)
    assert "https://sns.example/confirm" in str(excinfo.value)


@pytest.mark.parametrize(
    "body",
    [{"txtkn": "t"}, {"c": "chal"}, {"c": "", "txtkn": "t"}, "not json", "[1, 2]"],
)
def test_incomplete_messages(body):
    with pytest.raises(InvalidPushMessage):
        parse_push_message(body)


def test_non_utf8_bytes_are_an_invalid_message():
    with pytest.raises(InvalidPushMessage) as excinfo:
        parse_push_message(b'{"c": "\xff"}')
    assert "UTF-8" in str(excinfo.value)
