from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer

from guardian_shell.services.logging import configure_logging, redact
from guardian_shell.services.mfa.client import HttpxTransport
from guardian_shell.services.mfa.enrollments import FileEnrollmentStore
from guardian_shell.services.mfa.errors import (
    ConfigurationError,
    GuardianError,
    InvalidPushMessage,
    UnsavedEnrollmentError,
)
from guardian_shell.services.mfa.jwk import read_pem
from guardian_shell.services.mfa.notifications import PushNotification, parse_push_message
from guardian_shell.services.mfa.service import GuardianDeviceService
from guardian_shell.services.settings import GuardianSettings

app = typer.Typer(
    help="Enroll devices with Auth0 Guardian and answer its push MFA challenges.",
    no_args_is_help=True,
)


@dataclass(slots=True)
class CliState:
    settings: GuardianSettings

    def store(self) -> FileEnrollmentStore:
        return FileEnrollmentStore(self.settings.enrollments_dir)

    def service(self) -> GuardianDeviceService:
        transport = HttpxTransport(timeout=self.settings.http_timeout)
        return GuardianDeviceService(self.store(), transport, self.settings)

    def private_key(self, path: Path | None) -> str:
        return read_pem(path or self.settings.private_key_path)


def _state(ctx: typer.Context) -> CliState:
    state = ctx.obj
    if not isinstance(state, CliState):
        state = CliState(settings=GuardianSettings.from_sources())
        ctx.obj = state
    return state


def _print_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _read_push(path: Path) -> PushNotification:
    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidPushMessage(f"push message {path} is not UTF-8: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"cannot read push message {path}: {exc}") from exc
    return parse_push_message(raw)


@app.callback()
def cli(
    ctx: typer.Context,
    enrollments_dir: Optional[Path] = typer.Option(
        None,
        "--enrollments-dir",
        help="Directory holding {device_id}.json enrollment records (GUARDIAN_ENROLLMENTS_DIR).",
    ),
    auth0_client: Optional[str] = typer.Option(
        None,
        "--auth0-client",
        "-a",
        help="Raw Auth0-Client header value (base64url-encoded JSON).",
    ),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Read settings from this .env file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests to stderr."),
    log_json: bool = typer.Option(False, "--log-json", help="Emit logs as JSON lines."),
) -> None:
    configure_logging("INFO" if verbose else None, json_output=log_json)
    settings = GuardianSettings.from_sources(env_file=env_file).with_overrides(
        enrollments_dir=enrollments_dir,
        auth0_client=auth0_client,
    )
    ctx.obj = CliState(settings=settings)


@app.command("enroll")
def enroll(
    ctx: typer.Context,
    ticket: str = typer.Option(..., "--ticket", "-t", help="Enrollment ticket (enrollment_tx_id from the QR code)."),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Tenant domain, defaults to AUTH0_DOMAIN."),
    device_id: str = typer.Option(..., "--device-id", "-i", help="Unique identifier for this device."),
    name: str = typer.Option(..., "--name", "-n", help="Device name shown in the Auth0 dashboard."),
    push_token: str = typer.Option(..., "--push-token", "-g", help="FCM registration token."),
    public_key: Path = typer.Option(..., "--public-key", "-f", help="RSA public key PEM file."),
) -> None:
    state = _state(ctx)
    try:
        domain = domain or state.settings.default_domain
        if not domain:
            raise ConfigurationError("--domain is required when AUTH0_DOMAIN is not set")
        result = state.service().enroll(
            ticket=ticket,
            domain=domain,
            device_id=device_id,
            name=name,
            push_token=push_token,
            public_key_pem=read_pem(public_key),
        )
    except UnsavedEnrollmentError as exc:
        _print_error(str(exc))
        typer.echo(
            f"Remove it with: guardian unenroll -i {device_id} --domain {domain} "
            f"--enrollment-id {exc.enrollment_id} --device-token {exc.device_token}",
            err=True,
        )
        raise typer.Exit(1)
    except GuardianError as exc:
        _print_error(str(exc))
        raise typer.Exit(1)
    typer.secho(f"Device {device_id} enrolled.", fg=typer.colors.GREEN, err=True)
    typer.echo(f"Enrollment data: {state.store().path_for(device_id)}", err=True)
    _echo_json(dict(result.response))


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    challenge: Optional[str] = typer.Option(None, "--challenge", "-c", help="Challenge from the push message."),
    transaction_token: Optional[str] = typer.Option(
        None, "--transaction-token", "-x", help="Transaction token (txtkn) from the push message."
    ),
    push_file: Optional[Path] = typer.Option(
        None, "--push", help="Saved push message to take the challenge and token from."
    ),
    reject: Optional[str] = typer.Option(None, "--reject", "-r", help="Reject the login with this reason."),
    device_id: Optional[str] = typer.Option(
        None, "--device-id", "-i", help="Enrolled device, auto-detected when only one exists."
    ),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Override the enrollment's domain."),
    private_key: Optional[Path] = typer.Option(
        None, "--private-key", "-k", help="RSA private key PEM file (GUARDIAN_PRIVATE_KEY)."
    ),
) -> None:
    state = _state(ctx)
    try:
        if push_file is not None:
            notification = _read_push(push_file)
            challenge = challenge or notification.challenge
            transaction_token = transaction_token or notification.transaction_token
        if not challenge or not transaction_token:
            raise typer.BadParameter("pass --challenge and --transaction-token, or --push FILE")
        result = state.service().resolve_transaction(
            challenge=challenge,
            transaction_token=transaction_token,
            private_key_pem=state.private_key(private_key),
            device_id=device_id,
            domain=domain,
            reject_reason=reject,
        )
    except GuardianError as exc:
        _print_error(str(exc))
        raise typer.Exit(1)
    if result.accepted:
        typer.secho(f"Transaction allowed (device {result.device_id}).", fg=typer.colors.GREEN)
    else:
        typer.secho(f"Transaction rejected (device {result.device_id}): {reject}", fg=typer.colors.YELLOW)


@app.command("update")
def update(
    ctx: typer.Context,
    push_token: str = typer.Option(..., "--push-token", "-g", help="FCM registration token (always sent)."),
    device_id: Optional[str] = typer.Option(
        None, "--device-id", "-i", help="Enrolled device, auto-detected when only one exists."
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New device name."),
    identifier: Optional[str] = typer.Option(None, "--identifier", help="New device identifier."),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Override the enrollment's domain."),
) -> None:
    state = _state(ctx)
    try:
        result = state.service().update_device(
            push_token=push_token,
            device_id=device_id,
            name=name,
            identifier=identifier,
            domain=domain,
        )
    except GuardianError as exc:
        _print_error(str(exc))
        raise typer.Exit(1)
    typer.secho(
        f"Device {result.device_id} updated ({', '.join(result.fields)}).",
        fg=typer.colors.GREEN,
        err=True,
    )
    _echo_json(result.body if result.body is not None else {})


@app.command("unenroll")
def unenroll(
    ctx: typer.Context,
    device_id: str = typer.Option(..., "--device-id", "-i", help="Device identifier used at enrollment."),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Override the enrollment's domain."),
    enrollment_id: Optional[str] = typer.Option(
        None, "--enrollment-id", help="Enrollment id, when no local record is left."
    ),
    device_token: Optional[str] = typer.Option(
        None, "--device-token", help="Device token, when no local record is left."
    ),
) -> None:
    state = _state(ctx)
    try:
        result = state.service().unenroll(
            device_id=device_id,
            domain=domain,
            enrollment_id=enrollment_id,
            device_token=device_token,
        )
    except GuardianError as exc:
        _print_error(str(exc))
        raise typer.Exit(1)
    if result.already_absent:
        typer.secho(f"Device {device_id} was already unenrolled.", fg=typer.colors.YELLOW)
    else:
        typer.secho(f"Device {device_id} unenrolled.", fg=typer.colors.GREEN)
    if result.record_removed:
        typer.echo("Local enrollment data removed.")


@app.command("rich-consent")
def rich_consent(
    ctx: typer.Context,
    consent_id: str = typer.Argument(..., help="Rich consent id from the push message."),
    transaction_token: str = typer.Option(..., "--transaction-token", "-x", help="Transaction token (txtkn)."),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Tenant domain."),
    device_id: Optional[str] = typer.Option(None, "--device-id", "-i", help="Take the domain from this enrollment."),
    private_key: Optional[Path] = typer.Option(
        None, "--private-key", "-k", help="RSA private key PEM file (GUARDIAN_PRIVATE_KEY)."
    ),
) -> None:
    state = _state(ctx)
    try:
        body = state.service().fetch_rich_consent(
            consent_id,
            transaction_token=transaction_token,
            private_key_pem=state.private_key(private_key),
            domain=domain,
            device_id=device_id,
        )
    except GuardianError as exc:
        _print_error(str(exc))
        raise typer.Exit(1)
    _echo_json(body)


@app.command("devices")
def devices(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Print records as JSON with tokens redacted."),
) -> None:
    state = _state(ctx)
    try:
        records = state.store().records()
    except GuardianError as exc:
        _print_error(str(exc))
        raise typer.Exit(1)
    rows = [
        {
            "device_id": record.device_id,
            "enrollment_id": record.enrollment_id,
            "domain": record.domain,
            "device_token": redact(record.device_token),
            "enrolled_at": record.enrolled_at,
        }
        for record in records
    ]
    if json_output:
        _echo_json(rows)
        return
    if not rows:
        typer.echo(f"No enrolled devices in {state.settings.enrollments_dir}.")
        return

    headers = ["device_id", "enrollment_id", "domain", "device_token", "enrolled_at"]
    widths = [max(len(str(row[h])) for row in [dict(zip(headers, headers))] + rows) for h in headers]
    typer.echo("  ".join(h.ljust(w) for h, w in zip(headers, widths)))
    typer.echo("  ".join("-" * w for w in widths))
    for row in rows:
        typer.echo("  ".join(str(row[h]).ljust(w) for h, w in zip(headers, widths)))


@app.command("push")
def push(
    message: Path = typer.Argument(..., help="File holding an FCM data payload or an SNS envelope."),
) -> None:
    """Decode a saved push message into its challenge and transaction token."""

    try:
        notification = _read_push(message)
    except GuardianError as exc:
        _print_error(str(exc))
        raise typer.Exit(1)
    _echo_json(
        {
            "challenge": notification.challenge,
            "transaction_token": notification.transaction_token,
            **dict(notification.extra),
        }
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
