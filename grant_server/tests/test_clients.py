"""Tests for the Client Registry: registration validation, lookup, secret verification."""
import pytest

from grant_server.clients import ClientRegistry, normalize_redirect_uris
from grant_server.errors import ClientNotFound, ValidationError
from grant_server.models import Client as ClientRow


@pytest.fixture
def registry(database):
    return ClientRegistry(database)


def test_register_returns_credentials_once(registry):
    registered = registry.register("demo-app", ["https://x/cb"])
    assert registered.client_id
    assert registered.client_secret
    assert registered.client.name == "demo-app"
    assert registered.client.redirect_uris == ("https://x/cb",)
    # Lookup never exposes the secret
    looked_up = registry.lookup(registered.client_id)
    assert looked_up == registered.client
    assert not hasattr(looked_up, "client_secret")


def test_secret_is_stored_hashed(registry, database):
    registered = registry.register("demo-app", ["https://x/cb"])
    with database.session() as db:
        row = db.get(ClientRow, registered.client_id)
        assert row.client_secret_hash != registered.client_secret
        assert row.client_secret_hash.startswith("$2")


def test_identifiers_are_unique_and_high_entropy(registry):
    a = registry.register("a", ["https://a/cb"])
    b = registry.register("b", ["https://b/cb"])
    assert a.client_id != b.client_id
    assert a.client_secret != b.client_secret
    # token_urlsafe(32) -> 43 characters
    assert len(a.client_id) >= 43
    assert len(a.client_secret) >= 43


@pytest.mark.parametrize("name", ["", "   ", None])
def test_register_rejects_empty_name(registry, name):
    with pytest.raises(ValidationError):
        registry.register(name, ["https://x/cb"])


@pytest.mark.parametrize(
    "uris",
    [
        [],
        None,
        "https://x/cb",
        [""],
        ["/relative/cb"],
        ["ftp://x/cb"],
        ["https:///no-host"],
        ["https://x/cb#fragment"],
    ],
)
def test_register_rejects_bad_redirect_uris(registry, uris):
    with pytest.raises(ValidationError):
        registry.register("demo-app", uris)


def test_redirect_uris_deduplicated_in_order():
    assert normalize_redirect_uris(["https://b/cb", "https://a/cb", "https://b/cb"]) == [
        "https://b/cb",
        "https://a/cb",
    ]


def test_lookup_unknown_client(registry):
    with pytest.raises(ClientNotFound):
        registry.lookup("no-such-client")


def test_verify_secret(registry):
    registered = registry.register("demo-app", ["https://x/cb"])
    assert registry.verify_secret(registered.client_id, registered.client_secret) is True
    assert registry.verify_secret(registered.client_id, "wrong") is False
    assert registry.verify_secret(registered.client_id, "") is False
    assert registry.verify_secret(registered.client_id, None) is False
    assert registry.verify_secret("no-such-client", registered.client_secret) is False


def test_verify_secret_of_other_client_fails(registry):
    a = registry.register("a", ["https://a/cb"])
    b = registry.register("b", ["https://b/cb"])
    assert registry.verify_secret(a.client_id, b.client_secret) is False


def test_redirect_uri_allowed_is_exact_match(registry):
    client = registry.register("demo-app", ["https://x/cb"]).client
    assert client.redirect_uri_allowed("https://x/cb")
    assert not client.redirect_uri_allowed("https://x/cb/")
    assert not client.redirect_uri_allowed("https://x/cb?next=evil")
