from __future__ import annotations

import base64
import json
from pathlib import Path

from guardian_shell.services.settings import GuardianSettings, parse_env_file


def test_defaults(tmp_path):
    settings = GuardianSettings.from_sources(env={}, env_file=tmp_path / "missing.env")
    assert settings.enrollments_dir == Path(".enrollments")
    assert settings.private_key_path == Path("private.pem")
    assert settings.default_domain is None
    assert settings.http_timeout == 15.0
    assert settings.push_service == "GCM"


def test_env_file_then_environment(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# guardian\n"
        "export AUTH0_DOMAIN=file.auth0.com\n"
        "GUARDIAN_HTTP_TIMEOUT='5'\n"
        'GUARDIAN_ENROLLMENTS_DIR="state"\n',
        encoding="utf-8",
    )
    settings = GuardianSettings.from_sources(env={"AUTH0_DOMAIN": "env.auth0.com"}, env_file=env_file)
    assert settings.default_domain == "env.auth0.com"
    assert settings.http_timeout == 5.0
    assert settings.enrollments_dir == Path("state")


def test_overrides_ignore_none(tmp_path):
    settings = GuardianSettings.from_sources(env={"AUTH0_CLIENT": "abc"}, env_file=tmp_path / "none")
    updated = settings.with_overrides(auth0_client=None, enrollments_dir=str(tmp_path / "e"))
    assert updated.auth0_client == "abc"
    assert updated.enrollments_dir == tmp_path / "e"


def test_bad_timeout_falls_back_to_default(tmp_path):
    settings = GuardianSettings.from_sources(env={"GUARDIAN_HTTP_TIMEOUT": "soon"}, env_file=tmp_path / "none")
    assert settings.http_timeout == 15.0


def test_auth0_client_header_default():
    header = GuardianSettings().auth0_client_header()
    assert "=" not in header
    decoded = base64.urlsafe_b64decode(header + "=" * (-len(header) % 4))
    assert decoded == b'{"name":"Guardian.Shell","version":"1.0.0"}'
    assert json.loads(decoded) == {"name": "Guardian.Shell", "version": "1.0.0"}


def test_auth0_client_header_override():
    assert GuardianSettings(auth0_client="raw").auth0_client_header() == "raw"


def test_parse_env_file_skips_comments_and_blank_lines(tmp_path):
    path = tmp_path / ".env"
    path.write_text("\n# comment\nKEY = value \nBROKEN\n", encoding="utf-8")
    assert parse_env_file(path) == {"KEY": "value"}


def test_parse_env_file_accepts_shell_exports(tmp_path):
    path = tmp_path / ".env"
    path.write_text('export AUTH0_DOMAIN="tenant.auth0.com"\nexport GUARDIAN_PUSH_SERVICE=APNS\n', encoding="utf-8")
    assert parse_env_file(path) == {"AUTH0_DOMAIN": "tenant.auth0.com", "GUARDIAN_PUSH_SERVICE": "APNS"}
