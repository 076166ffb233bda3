"""Settings parsing from the environment."""

import pytest

from sorgulen_api.config import Settings, parse_duration
from sorgulen_api.errors import ConfigurationError

from conftest import make_settings

BASE_ENV = {
    "JWT_SECRET": "s3cret",
    "FIREBASE_CREDENTIALS": "/etc/sorgulen/sa.json",
}


@pytest.mark.parametrize("value,seconds", [
    ("12h", 43200),
    ("30m", 1800),
    ("7d", 604800),
    ("45s", 45),
    ("3600", 3600),
    (" 2H ", 7200),
])
def test_parse_duration(value, seconds):
    assert parse_duration(value) == seconds


@pytest.mark.parametrize("value", ["", "twelve hours", "12w", "0h", "-5m"])
def test_parse_duration_rejects_garbage(value):
    with pytest.raises(ConfigurationError):
        parse_duration(value)


def test_defaults_from_minimal_env():
    settings = Settings.from_env(BASE_ENV)

    assert settings.jwt_secret == "s3cret"
    assert settings.token_lifetime_seconds == 12 * 3600
    assert settings.firebase_credentials == "/etc/sorgulen/sa.json"
    assert settings.smtp_host == "smtp.gmail.com"
    assert settings.smtp_port == 465
    assert settings.smtp_secure is True
    assert settings.admin_base_url == "/admin"
    assert settings.trust_proxy is True
    assert settings.rate_limit_enabled is True
    assert settings.allowed_origins == ()
    assert settings.seed_owner_email is None


def test_full_env():
    env = dict(
        BASE_ENV,
        JWT_EXPIRES="30m",
        SEED_OWNER_EMAIL="owner@sorgulen.no",
        SEED_OWNER_PASSWORD="pw",
        SMTP_PORT="587",
        SMTP_SECURE="false",
        SMTP_USER="mailer@sorgulen.no",
        SMTP_PASS="app-password",
        COMPANY_EMAIL="post@sorgulen.no",
        BASE_URL="https://api.sorgulen.no/",
        ALLOWED_ORIGINS="https://sorgulen.no, https://www.sorgulen.no,",
        DEBUG="true",
    )

    settings = Settings.from_env(env)

    assert settings.token_lifetime_seconds == 1800
    assert settings.seed_owner_email == "owner@sorgulen.no"
    assert settings.smtp_port == 587
    assert settings.smtp_secure is False
    assert settings.alert_recipient == "post@sorgulen.no"
    assert settings.admin_url == "https://api.sorgulen.no/admin"
    assert settings.allowed_origins == ("https://sorgulen.no", "https://www.sorgulen.no")
    assert settings.debug is True


def test_netlify_origin_alias():
    settings = Settings.from_env(dict(BASE_ENV, NETLIFY_ORIGIN="https://sorgulen.netlify.app"))

    assert settings.allowed_origins == ("https://sorgulen.netlify.app",)


def test_project_id_is_enough_for_database():
    env = {"JWT_SECRET": "s3cret", "FIRESTORE_PROJECT_ID": "sorgulen"}

    assert Settings.from_env(env).firestore_project_id == "sorgulen"


def test_missing_secret_is_fatal():
    with pytest.raises(ConfigurationError, match="JWT_SECRET"):
        Settings.from_env({"FIREBASE_CREDENTIALS": "/etc/sa.json"})


def test_missing_database_is_fatal():
    with pytest.raises(ConfigurationError, match="Database"):
        Settings.from_env({"JWT_SECRET": "s3cret"})


def test_bad_integer_is_fatal():
    with pytest.raises(ConfigurationError, match="SMTP_PORT"):
        Settings.from_env(dict(BASE_ENV, SMTP_PORT="smtp"))


def test_settings_are_immutable():
    settings = make_settings()

    with pytest.raises(Exception):
        settings.jwt_secret = "other"


def test_secrets_are_not_in_repr():
    settings = make_settings(smtp_password="hunter2")

    assert "hunter2" not in repr(settings)
    assert "owner-password" not in repr(settings)
