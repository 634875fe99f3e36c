"""Tests for the Token Issuer: issuance, validation, rotation, revocation, sweeping."""
import pytest

from grant_server.errors import ExpiredToken, InvalidToken, NotFoundError
from grant_server.tokens import TokenIssuer


@pytest.fixture
def tokens(database, clock):
    return TokenIssuer(database, access_ttl=600, refresh_ttl=3600, clock=clock)


@pytest.fixture
def pair(tokens, registered, user):
    return tokens.issue_from_code(registered.client_id, user.id)


def test_issue_sets_binding_and_expiry(pair, registered, user, clock):
    assert pair.client_id == registered.client_id
    assert pair.user_id == user.id
    assert pair.access_token != pair.refresh_token
    assert (pair.access_expires_at - clock.now).total_seconds() == 600
    assert (pair.refresh_expires_at - clock.now).total_seconds() == 3600
    assert pair.revoked is False


def test_validate_returns_issued_binding(tokens, pair, registered, user):
    validated = tokens.validate_access_token(pair.access_token)
    assert (validated.client_id, validated.user_id) == (registered.client_id, user.id)


def test_validate_does_not_accept_refresh_token(tokens, pair):
    with pytest.raises(InvalidToken):
        tokens.validate_access_token(pair.refresh_token)


def test_validate_unknown_token(tokens):
    with pytest.raises(InvalidToken):
        tokens.validate_access_token("forged")
    with pytest.raises(InvalidToken):
        tokens.validate_access_token("")


def test_validate_expired_access_token(tokens, pair, clock):
    clock.advance(601)
    with pytest.raises(ExpiredToken):
        tokens.validate_access_token(pair.access_token)


def test_validate_is_read_only(tokens, pair):
    tokens.validate_access_token(pair.access_token)
    tokens.validate_access_token(pair.access_token)
    assert tokens.lookup(pair.access_token) == pair


def test_rotate_replaces_access_token(tokens, pair, clock):
    clock.advance(100)
    rotated = tokens.rotate(pair.refresh_token)
    assert rotated.access_token != pair.access_token
    assert (rotated.client_id, rotated.user_id) == (pair.client_id, pair.user_id)
    assert (rotated.access_expires_at - clock.now).total_seconds() == 600
    # No overlap window: the old access token is dead immediately
    with pytest.raises(InvalidToken):
        tokens.validate_access_token(pair.access_token)
    assert tokens.validate_access_token(rotated.access_token).user_id == pair.user_id


def test_rotate_also_rotates_refresh_token(tokens, pair, clock):
    clock.advance(100)
    rotated = tokens.rotate(pair.refresh_token)
    assert rotated.refresh_token != pair.refresh_token
    assert (rotated.refresh_expires_at - clock.now).total_seconds() == 3600
    with pytest.raises(InvalidToken):
        tokens.rotate(pair.refresh_token)
    assert tokens.rotate(rotated.refresh_token).user_id == pair.user_id


def test_rotate_can_keep_refresh_token(database, clock, registered, user):
    tokens = TokenIssuer(database, access_ttl=600, refresh_ttl=3600, rotate_refresh_token=False, clock=clock)
    pair = tokens.issue_from_code(registered.client_id, user.id)
    clock.advance(10)
    rotated = tokens.rotate(pair.refresh_token)
    assert rotated.refresh_token == pair.refresh_token
    assert rotated.refresh_expires_at == pair.refresh_expires_at
    assert rotated.access_token != pair.access_token
    again = tokens.rotate(pair.refresh_token)
    with pytest.raises(InvalidToken):
        tokens.validate_access_token(rotated.access_token)
    assert tokens.validate_access_token(again.access_token)


def test_rotate_unknown_or_expired(tokens, pair, clock):
    with pytest.raises(InvalidToken):
        tokens.rotate("forged")
    with pytest.raises(InvalidToken):
        tokens.rotate(pair.access_token)
    clock.advance(3601)
    with pytest.raises(ExpiredToken):
        tokens.rotate(pair.refresh_token)
    # Failed rotation leaves the pair as it was
    assert tokens.lookup(pair.refresh_token) == pair


def test_rotate_works_after_access_token_expired(tokens, pair, clock):
    clock.advance(601)
    rotated = tokens.rotate(pair.refresh_token)
    assert tokens.validate_access_token(rotated.access_token)


def test_revoke_by_either_token(tokens, registered, user):
    by_access = tokens.issue_from_code(registered.client_id, user.id)
    by_refresh = tokens.issue_from_code(registered.client_id, user.id)
    assert tokens.revoke(by_access.access_token).revoked is True
    assert tokens.revoke(by_refresh.refresh_token).revoked is True
    for pair in (by_access, by_refresh):
        with pytest.raises(InvalidToken):
            tokens.validate_access_token(pair.access_token)
        with pytest.raises(InvalidToken):
            tokens.rotate(pair.refresh_token)
    assert tokens.revoke("unknown") is None


def test_revoked_and_unknown_are_indistinguishable(tokens, pair):
    tokens.revoke(pair.access_token)
    with pytest.raises(InvalidToken) as revoked:
        tokens.validate_access_token(pair.access_token)
    with pytest.raises(InvalidToken) as unknown:
        tokens.validate_access_token("never-issued")
    assert type(revoked.value) is type(unknown.value)
    assert str(revoked.value) == str(unknown.value)


def test_expired_token_is_a_not_found_error(tokens, pair, clock):
    clock.advance(10_000)
    with pytest.raises(NotFoundError):
        tokens.validate_access_token(pair.access_token)


def test_purge_removes_revoked_and_expired_pairs(tokens, registered, user, clock):
    revoked = tokens.issue_from_code(registered.client_id, user.id)
    tokens.revoke(revoked.access_token)
    stale = tokens.issue_from_code(registered.client_id, user.id)
    clock.advance(3000)
    live = tokens.issue_from_code(registered.client_id, user.id)
    clock.advance(1000)

    assert tokens.purge_expired() == 2
    assert tokens.lookup(revoked.access_token) is None
    assert tokens.lookup(stale.refresh_token) is None
    assert tokens.lookup(live.refresh_token) is not None
