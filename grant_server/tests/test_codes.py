"""Tests for the Code Issuer: issuance checks, single-use redemption, expiry, sweeping."""
import pytest

from grant_server.codes import CodeIssuer
from grant_server.errors import (
    ClientNotFound,
    CodeAlreadyUsed,
    ExpiredCode,
    InvalidCode,
    NotFoundError,
    UserNotFound,
    ValidationError,
)


@pytest.fixture
def codes(database, clock):
    return CodeIssuer(database, code_ttl=60, clock=clock)


def test_issue_binds_client_and_user(codes, registered, user, clock):
    issued = codes.issue(registered.client_id, user.id)
    assert issued.client_id == registered.client_id
    assert issued.user_id == user.id
    assert issued.redirect_uri == "https://x/cb"
    assert issued.issued_at == clock.now
    assert (issued.expires_at - issued.issued_at).total_seconds() == 60
    assert issued.consumed is False


def test_issue_unknown_client(codes, user):
    with pytest.raises(ClientNotFound):
        codes.issue("no-such-client", user.id)


def test_issue_unknown_user(codes, registered):
    with pytest.raises(UserNotFound):
        codes.issue(registered.client_id, "no-such-user")


def test_issue_with_registered_redirect_uri(codes, authz, user):
    registered = authz.register("multi", ["https://x/cb", "https://x/other"])
    issued = codes.issue(registered.client_id, user.id, "https://x/other")
    assert issued.redirect_uri == "https://x/other"


def test_issue_with_unregistered_redirect_uri(codes, registered, user):
    with pytest.raises(ValidationError):
        codes.issue(registered.client_id, user.id, "https://evil/cb")


def test_codes_are_unique(codes, registered, user):
    issued = {codes.issue(registered.client_id, user.id).code for _ in range(20)}
    assert len(issued) == 20


def test_redeem_returns_binding_once(codes, registered, user):
    issued = codes.issue(registered.client_id, user.id)
    redeemed = codes.redeem(issued.code)
    assert (redeemed.client_id, redeemed.user_id) == (registered.client_id, user.id)
    assert redeemed.consumed is True
    with pytest.raises(CodeAlreadyUsed):
        codes.redeem(issued.code)


def test_redeem_unknown_code(codes):
    with pytest.raises(InvalidCode):
        codes.redeem("not-a-code")
    with pytest.raises(InvalidCode):
        codes.redeem("")


def test_redeem_expired_code(codes, registered, user, clock):
    issued = codes.issue(registered.client_id, user.id)
    clock.advance(61)
    with pytest.raises(ExpiredCode):
        codes.redeem(issued.code)
    # Failed redemption leaves the code untouched
    assert codes.lookup(issued.code).consumed is False


def test_redeem_at_exact_expiry_still_valid(codes, registered, user, clock):
    issued = codes.issue(registered.client_id, user.id)
    clock.advance(60)
    assert codes.redeem(issued.code).consumed is True


def test_expired_code_is_a_not_found_error(codes, registered, user, clock):
    """Expired codes are handled like codes that never existed."""
    issued = codes.issue(registered.client_id, user.id)
    clock.advance(3600)
    with pytest.raises(NotFoundError):
        codes.redeem(issued.code)


def test_purge_removes_consumed_and_expired_only(codes, registered, user, clock):
    consumed = codes.issue(registered.client_id, user.id)
    codes.redeem(consumed.code)
    stale = codes.issue(registered.client_id, user.id)
    clock.advance(45)
    live = codes.issue(registered.client_id, user.id)
    clock.advance(30)  # stale is now expired, live is not

    assert codes.purge_expired() == 2
    assert codes.lookup(consumed.code) is None
    assert codes.lookup(stale.code) is None
    assert codes.lookup(live.code) is not None
    # Swept codes can no longer be redeemed
    with pytest.raises(InvalidCode):
        codes.redeem(stale.code)
    assert codes.redeem(live.code).consumed is True
