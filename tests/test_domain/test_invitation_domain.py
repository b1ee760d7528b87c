"""
Tests for invitation domain rules
"""
from datetime import datetime, timedelta, timezone

from envelope_budget.domain.invitation import (
    generate_token, compute_expiry, is_expired, emails_match, build_signup_link,
)
from envelope_budget.domain.budget_profile import is_valid_currency


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_token_is_64_hex_chars_and_random():
    token = generate_token()
    assert len(token) == 64
    int(token, 16)
    assert token != generate_token()


def test_expiry_window():
    expires_at = compute_expiry(NOW, 7)
    assert expires_at == NOW + timedelta(days=7)
    assert not is_expired(expires_at, NOW + timedelta(days=6))
    assert is_expired(expires_at, NOW + timedelta(days=7, seconds=1))


def test_naive_database_timestamps_are_treated_as_utc():
    naive = datetime(2026, 5, 8, 12, 0)
    assert not is_expired(naive, NOW)
    assert is_expired(naive, NOW + timedelta(days=8))


def test_emails_match_ignores_case_and_whitespace():
    assert emails_match(" Jane@Example.com", "jane@example.com")
    assert not emails_match("jane@example.com", "john@example.com")


def test_signup_link():
    assert build_signup_link("https://app.example.com/", "abc") == "https://app.example.com/signup?inviteToken=abc"


def test_currency_code_format():
    assert is_valid_currency("EUR")
    assert not is_valid_currency("eur")
    assert not is_valid_currency("EURO")
