"""Unit tests for core/validation.py -- email and password policy.

Covers:
- plain dot-atom addresses with dotted domains are accepted
- empty, whitespace, quoted, escaped and dot-less forms are rejected
- password length threshold at 8, independent of content
"""

import pytest

from core.validation import MIN_PASSWORD_LENGTH, validate_email, validate_password


@pytest.mark.parametrize(
    "email",
    [
        "test@io.com",
        "test.io@epam.com",
        "test.io.example+today@epam.com",
        "test-io@epam.com",
        "test@io-epam.com",
        "test-io@epam-usa.com",
        "123456789testio@epam2.com",
        "a@b.co.uk",
    ],
)
def test_valid_emails(email):
    assert validate_email(email) is True


@pytest.mark.parametrize(
    "email",
    [
        "",
        " ",
        "@.com",
        '"test.io.com',
        'test(io"epam)example]com',
        'test\\"io\\"epam.com"',
        ".test... io\\today@epam.com",
        "plainaddress",
        "user@localhost",
        "user@domain.",
        "user@.domain.com",
        "user@-domain.com",
        "user..name@domain.com",
        ".user@domain.com",
        "user.@domain.com",
        "user@@domain.com",
        " user@domain.com",
        "user@domain.com ",
    ],
)
def test_invalid_emails(email):
    assert validate_email(email) is False


def test_email_without_at_or_domain_dot_is_rejected():
    assert validate_email("user.domain.com") is False
    assert validate_email("user@domaincom") is False


@pytest.mark.parametrize("password", ["", "a", "1234567", "short!!"])
def test_short_passwords_rejected(password):
    assert len(password) < MIN_PASSWORD_LENGTH
    assert validate_password(password) is False


@pytest.mark.parametrize("password", ["12345678", "        ", "password123", "ü" * 8, "x" * 500])
def test_long_enough_passwords_accepted_regardless_of_content(password):
    assert validate_password(password) is True
