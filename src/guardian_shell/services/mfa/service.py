"""Guardian device protocol operations.

Each operation is one synchronous request/response exchange. Failures are
raised as :mod:`guardian_shell.services.mfa.errors` exceptions and never
retried; the only recovery built in is that Unenroll treats a 404 as success.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, NoReturn

from guardian_shell.services.logging import redact
from guardian_shell.services.settings import GuardianSettings

from . import domains
from .client import Transport, TransportResponse
from .enrollments import EnrollmentStore, check_device_id
from .errors import (
    AlreadyEnrolled,
    AuthenticationError,
    ConfigurationError,
    DeviceNotFound,
    GuardianHttpError,
    InvalidChallenge,
    InvalidDeviceToken,
    InvalidRequest,
    InvalidTicket,
    InvalidTransactionToken,
    NotFoundError,
    StoreError,
    UnexpectedStatusError,
    UnsavedEnrollmentError,
    ValidationError,
    error_detail,
)
from .jwk import load_private_key, public_pem_to_jwk
from .models import (
    EnrollmentRecord,
    EnrollmentRequest,
    EnrollmentResponse,
    PushCredentials,
    ResolveTransactionRequest,
    UpdateDeviceRequest,
    encode_body,
)
from .tokens import sign_dpop_proof, sign_transaction_token

__all__ = [
    "GuardianDeviceService",
    "EnrollResult",
    "ResolveResult",
    "UpdateResult",
    "UnenrollResult",
    "DPOP_SCHEME",
]

_log = logging.getLogger("guardian_shell.mfa.service")

DPOP_SCHEME = "MFA-DPoP"

_ErrorMap = Mapping[int, tuple[type[GuardianHttpError], str]]

_ENROLL_ERRORS: _ErrorMap = {
    401: (InvalidTicket, "unauthorized (invalid or expired ticket)"),
    409: (AlreadyEnrolled, "device already enrolled (conflict)"),
    400: (InvalidRequest, "bad request (check parameters)"),
}
_RESOLVE_ERRORS: _ErrorMap = {
    401: (InvalidTransactionToken, "invalid or expired transaction token"),
    400: (InvalidChallenge, "invalid challenge response"),
}
_UPDATE_ERRORS: _ErrorMap = {
    401: (InvalidDeviceToken, "invalid or expired device token"),
    404: (DeviceNotFound, "device not found (may have been deleted)"),
    400: (InvalidRequest, "invalid request parameters"),
}
_UNENROLL_ERRORS: _ErrorMap = {
    401: (InvalidDeviceToken, "unauthorized (invalid device token)"),
}
_RICH_CONSENT_ERRORS: _ErrorMap = {
    401: (AuthenticationError, "invalid transaction token or DPoP proof"),
    404: (NotFoundError, "rich consent not found"),
    400: (ValidationError, "bad rich consent request"),
}


def _raise_for_status(operation: str, response: TransportResponse, errors: _ErrorMap) -> NoReturn:
    error_cls, fallback = errors.get(response.status_code, (UnexpectedStatusError, f"HTTP {response.status_code}"))
    detail = error_detail(response.body, fallback)
    raise error_cls(f"{operation} failed: {detail}", status_code=response.status_code, payload=response.body)


@dataclass(slots=True)
class EnrollResult:
    record: EnrollmentRecord
    response: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ResolveResult:
    device_id: str
    accepted: bool
    url: str
    status_code: int


@dataclass(slots=True)
class UpdateResult:
    device_id: str
    fields: list[str]
    body: Any | None


@dataclass(slots=True)
class UnenrollResult:
    device_id: str
    already_absent: bool
    record_removed: bool


class GuardianDeviceService:
    """Enroll, resolve, update and unenroll a device against Guardian."""

    def __init__(
        self,
        store: EnrollmentStore,
        transport: Transport,
        settings: GuardianSettings | None = None,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._settings = settings or GuardianSettings()
        self._clock = clock or time.time

    @property
    def store(self) -> EnrollmentStore:
        return self._store

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _send(
        self,
        method: str,
        url: str,
        *,
        authorization: str,
        payload: Mapping[str, Any] | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        headers = {
            "Authorization": authorization,
            "Auth0-Client": self._settings.auth0_client_header(),
        }
        if extra_headers:
            headers.update(extra_headers)
        body = encode_body(payload) if payload is not None else None
        response = self._transport.send(method, url, headers, body)
        _log.info("%s %s -> %s", method, url, response.status_code)
        return response

    def _domain_for(self, explicit: str | None, record: EnrollmentRecord | None) -> str:
        domain = explicit or (record.domain if record else None) or self._settings.default_domain
        if not domain:
            raise ConfigurationError("no domain given and none stored for the device (set AUTH0_DOMAIN)")
        return domain

    def _push_credentials(self, push_token: str) -> PushCredentials:
        if not push_token:
            raise ConfigurationError("a push token is required: Guardian expects push_credentials on every call")
        return PushCredentials(token=push_token, service=self._settings.push_service)

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    def enroll(
        self,
        *,
        ticket: str,
        domain: str,
        device_id: str,
        name: str,
        push_token: str,
        public_key_pem: str,
    ) -> EnrollResult:
        check_device_id(device_id)
        jwk = public_pem_to_jwk(public_key_pem)
        url = domains.enroll_url(domain)
        request = EnrollmentRequest(
            identifier=device_id,
            name=name,
            push_credentials=self._push_credentials(push_token),
            public_key=jwk,
        )
        _log.info(
            "enrolling device",
            extra={"device_id": device_id, "url": url, "push_token": redact(push_token)},
        )
        response = self._send(
            "POST",
            url,
            authorization=f'Ticket id="{ticket}"',
            payload=request.as_payload(),
        )
        if response.status_code not in (200, 201):
            _raise_for_status("enrollment", response, _ENROLL_ERRORS)

        enrollment = EnrollmentResponse.from_payload(response.body)
        if not enrollment.id or not enrollment.token:
            raise UnexpectedStatusError(
                "enrollment response is missing id or token",
                status_code=response.status_code,
                payload=response.body,
            )
        record = EnrollmentRecord.from_enrollment(enrollment, device_id=device_id, domain=domain)
        try:
            self._store.put(record)
        except StoreError as exc:
            raise UnsavedEnrollmentError(
                f"device enrolled as {record.enrollment_id} but the record could not be saved: {exc}",
                enrollment_id=record.enrollment_id,
                device_token=record.device_token,
            ) from exc
        _log.info(
            "device enrolled",
            extra={
                "device_id": device_id,
                "enrollment_id": record.enrollment_id,
                "device_token": redact(record.device_token),
            },
        )
        return EnrollResult(record=record, response=enrollment.raw)

    def resolve_transaction(
        self,
        *,
        challenge: str,
        transaction_token: str,
        private_key_pem: str,
        device_id: str | None = None,
        domain: str | None = None,
        reject_reason: str | None = None,
    ) -> ResolveResult:
        """Allow the transaction, or reject it when ``reject_reason`` is given."""

        if device_id:
            record = self._store.get(device_id)
        else:
            record = self._store.select_single()
            device_id = record.device_id
        url = domains.resolve_transaction_url(self._domain_for(domain, record))
        accepted = not reject_reason
        token = sign_transaction_token(
            load_private_key(private_key_pem),
            audience=url,
            device_id=device_id,
            challenge=challenge,
            accepted=accepted,
            reason=reject_reason,
            clock=self._clock,
        )
        _log.info(
            "resolving transaction",
            extra={
                "action": "allow" if accepted else "reject",
                "device_id": device_id,
                "transaction_token": redact(transaction_token),
            },
        )
        response = self._send(
            "POST",
            url,
            authorization=f"Bearer {transaction_token}",
            payload=ResolveTransactionRequest(challenge_response=token).as_payload(),
        )
        if response.status_code not in (200, 204):
            _raise_for_status("transaction resolution", response, _RESOLVE_ERRORS)
        return ResolveResult(device_id=device_id, accepted=accepted, url=url, status_code=response.status_code)

    def update_device(
        self,
        *,
        push_token: str,
        device_id: str | None = None,
        name: str | None = None,
        identifier: str | None = None,
        domain: str | None = None,
    ) -> UpdateResult:
        record = self._store.require(device_id) if device_id else self._store.select_single()
        request = UpdateDeviceRequest(
            push_credentials=self._push_credentials(push_token),
            name=name,
            identifier=identifier,
        )
        url = domains.device_account_url(self._domain_for(domain, record), record.enrollment_id)
        _log.info(
            "updating device",
            extra={"device_id": record.device_id, "fields": request.fields(), "device_token": redact(record.device_token)},
        )
        response = self._send(
            "PATCH",
            url,
            authorization=f"Bearer {record.device_token}",
            payload=request.as_payload(),
        )
        if response.status_code != 200:
            _raise_for_status("device update", response, _UPDATE_ERRORS)
        if identifier and identifier != record.device_id:
            # the local record stays keyed by the enrollment-time device id
            _log.warning(
                "identifier changed server-side; local enrollment is still stored as %s",
                record.device_id,
            )
        return UpdateResult(device_id=record.device_id, fields=request.fields(), body=response.body)

    def unenroll(
        self,
        *,
        device_id: str,
        domain: str | None = None,
        enrollment_id: str | None = None,
        device_token: str | None = None,
    ) -> UnenrollResult:
        """Remove the device account; a 404 counts as already removed.

        ``enrollment_id`` and ``device_token`` default to the stored record and
        allow repeating the call once the record is gone.
        """

        explicit = bool(enrollment_id and device_token)
        try:
            record = self._store.get(device_id)
        except StoreError:
            if not explicit:
                raise
            record = None
        if record is None and not explicit:
            raise StoreError(f"enrollment data not found for device: {device_id}")
        enrollment_id = enrollment_id or record.enrollment_id
        device_token = device_token or record.device_token
        url = domains.device_account_url(self._domain_for(domain, record), enrollment_id)
        _log.info(
            "unenrolling device",
            extra={"device_id": device_id, "enrollment_id": enrollment_id, "device_token": redact(device_token)},
        )
        response = self._send("DELETE", url, authorization=f"Bearer {device_token}")
        if response.status_code in (200, 204):
            already_absent = False
        elif response.status_code == 404:
            already_absent = True
            _log.info("device already unenrolled (not found on server)", extra={"device_id": device_id})
        else:
            # record retained: server state is unknown
            _raise_for_status("unenrollment", response, _UNENROLL_ERRORS)
        removed = self._store.delete(device_id) if record is not None else False
        return UnenrollResult(device_id=device_id, already_absent=already_absent, record_removed=removed)

    def fetch_rich_consent(
        self,
        consent_id: str,
        *,
        transaction_token: str,
        private_key_pem: str,
        domain: str | None = None,
        device_id: str | None = None,
    ) -> Any:
        """Fetch rich-consent details, authenticated with a DPoP proof."""

        record = self._store.get(device_id) if device_id else None
        url = domains.rich_consent_url(self._domain_for(domain, record), consent_id)
        proof = sign_dpop_proof(
            load_private_key(private_key_pem),
            url=url,
            method="GET",
            access_token=transaction_token,
            clock=self._clock,
        )
        response = self._send(
            "GET",
            url,
            authorization=f"{DPOP_SCHEME} {transaction_token}",
            extra_headers={DPOP_SCHEME: proof},
        )
        if response.status_code != 200:
            _raise_for_status("rich consent lookup", response, _RICH_CONSENT_ERRORS)
        return response.body
