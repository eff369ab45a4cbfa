"""Guardian MFA device protocol: endpoints, keys, tokens, enrollment state."""
from .client import HttpxTransport, Transport, TransportResponse
from .domains import (
    DomainKind,
    classify_domain,
    device_account_url,
    endpoint_url,
    enroll_url,
    resolve_transaction_url,
    rich_consent_base,
    rich_consent_url,
)
from .enrollments import EnrollmentStore, FileEnrollmentStore
from .errors import (
    AlreadyEnrolled,
    AmbiguousDeviceError,
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    DeviceNotFound,
    GuardianError,
    GuardianHttpError,
    InvalidChallenge,
    InvalidDeviceToken,
    InvalidPushMessage,
    InvalidRequest,
    InvalidTicket,
    InvalidTransactionToken,
    KeyFormatError,
    NotFoundError,
    StoreError,
    TransportError,
    UnexpectedStatusError,
    UnsavedEnrollmentError,
    ValidationError,
)
from .jwk import public_pem_to_jwk, rsa_public_jwk
from .models import EnrollmentRecord
from .notifications import PushNotification, parse_push_message
from .service import EnrollResult, GuardianDeviceService, ResolveResult, UnenrollResult, UpdateResult
from .tokens import sign_dpop_proof, sign_jwt, sign_transaction_token

__all__ = [
    "HttpxTransport",
    "Transport",
    "TransportResponse",
    "DomainKind",
    "classify_domain",
    "device_account_url",
    "endpoint_url",
    "enroll_url",
    "resolve_transaction_url",
    "rich_consent_base",
    "rich_consent_url",
    "EnrollmentStore",
    "FileEnrollmentStore",
    "AlreadyEnrolled",
    "AmbiguousDeviceError",
    "AuthenticationError",
    "ConfigurationError",
    "ConflictError",
    "DeviceNotFound",
    "GuardianError",
    "GuardianHttpError",
    "InvalidChallenge",
    "InvalidDeviceToken",
    "InvalidPushMessage",
    "InvalidRequest",
    "InvalidTicket",
    "InvalidTransactionToken",
    "KeyFormatError",
    "NotFoundError",
    "StoreError",
    "TransportError",
    "UnexpectedStatusError",
    "UnsavedEnrollmentError",
    "ValidationError",
    "public_pem_to_jwk",
    "rsa_public_jwk",
    "EnrollmentRecord",
    "PushNotification",
    "parse_push_message",
    "EnrollResult",
    "GuardianDeviceService",
    "ResolveResult",
    "UnenrollResult",
    "UpdateResult",
    "sign_dpop_proof",
    "sign_jwt",
    "sign_transaction_token",
]
