"""
Authorization Engine: the protocol state machine over the four stores.

    Unregistered -> Registered -> Authorized (code) -> Exchanged (tokens)
        -> Active -> Refreshed* -> Expired / Revoked

Each operation reports an AuthEvent to an optional hook (see grant_server.audit).
A failing hook is logged and never changes what an operation returns or raises.
"""
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from grant_server.clients import ClientRegistry
from grant_server.codes import CodeIssuer
from grant_server.config import (
    ACCESS_TOKEN_EXPIRES,
    CODE_TTL_SECONDS,
    REFRESH_TOKEN_EXPIRES,
    ROTATE_REFRESH_TOKEN,
)
from grant_server.credentials import utc_now
from grant_server.database import Database
from grant_server.errors import (
    AuthorizationError,
    ClientMismatch,
    InvalidClientCredentials,
    NotFoundError,
    RedirectUriMismatch,
    Unauthorized,
    UserNotAuthenticated,
    UserNotFound,
)
from grant_server.identity import IdentityStore
from grant_server.records import AuthorizationCode, RegisteredClient, TokenPair, User
from grant_server.tokens import TokenIssuer

logger = logging.getLogger(__name__)

EVENT_CLIENT_REGISTERED = "client_registered"
EVENT_CODE_ISSUED = "code_issued"
EVENT_TOKEN_ISSUED = "token_issued"
EVENT_TOKEN_REFRESHED = "token_refreshed"
EVENT_TOKEN_REVOKED = "token_revoked"
EVENT_RESOURCE_ACCESS = "resource_access"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"


@dataclass(frozen=True)
class AuthEvent:
    """Security-relevant event. Never carries tokens, codes or secrets."""
    event_type: str
    outcome: str
    client_id: str | None = None
    user_id: str | None = None
    error: str | None = None


EventHook = Callable[[AuthEvent], None]


class AuthorizationEngine:
    def __init__(
        self,
        clients: ClientRegistry,
        identities: IdentityStore,
        codes: CodeIssuer,
        tokens: TokenIssuer,
        *,
        event_hook: EventHook | None = None,
    ):
        self.clients = clients
        self.identities = identities
        self.codes = codes
        self.tokens = tokens
        self.event_hook = event_hook

    def _emit(
        self,
        event_type: str,
        outcome: str = OUTCOME_SUCCESS,
        *,
        client_id: str | None = None,
        user_id: str | None = None,
        error: AuthorizationError | None = None,
    ) -> None:
        if self.event_hook is None:
            return
        event = AuthEvent(
            event_type=event_type,
            outcome=outcome,
            client_id=client_id,
            user_id=user_id,
            error=error.kind if error is not None else None,
        )
        try:
            self.event_hook(event)
        except Exception:
            logger.exception("Event hook failed for %s outcome=%s", event_type, outcome)

    def now(self) -> datetime:
        return self.tokens.now()

    def register(self, application_name: str, redirect_uris: Iterable[str]) -> RegisteredClient:
        """Register a client. The returned secret is never retrievable again."""
        try:
            registered = self.clients.register(application_name, redirect_uris)
        except AuthorizationError as e:
            self._emit(EVENT_CLIENT_REGISTERED, OUTCOME_FAIL, error=e)
            raise
        self._emit(EVENT_CLIENT_REGISTERED, client_id=registered.client_id)
        return registered

    def authorize(
        self,
        client_id: str,
        current_user_id: str | None,
        redirect_uri: str | None = None,
    ) -> AuthorizationCode:
        """
        Record consent of the authenticated user for client_id and mint a code.
        current_user_id comes from the authentication collaborator; None means nobody is logged in.
        """
        try:
            if not current_user_id:
                raise UserNotAuthenticated()
            self.clients.lookup(client_id)
            try:
                issued = self.codes.issue(client_id, current_user_id, redirect_uri)
            except UserNotFound as e:
                raise UserNotAuthenticated("Unknown user") from e
        except AuthorizationError as e:
            self._emit(EVENT_CODE_ISSUED, OUTCOME_FAIL, client_id=client_id, user_id=current_user_id, error=e)
            raise
        self._emit(EVENT_CODE_ISSUED, client_id=client_id, user_id=current_user_id)
        return issued

    def exchange_code_for_token(
        self,
        code: str,
        client_id: str,
        client_secret: str | None,
        redirect_uri: str | None = None,
    ) -> TokenPair:
        """
        Authenticate the client, redeem the code once, and issue a token pair for its binding.
        A code presented by the wrong client is still consumed.
        """
        try:
            if not self.clients.verify_secret(client_id, client_secret):
                raise InvalidClientCredentials()
            redeemed = self.codes.redeem(code)
            if redeemed.client_id != client_id:
                raise ClientMismatch()
            if redirect_uri is not None and redirect_uri != redeemed.redirect_uri:
                raise RedirectUriMismatch()
            pair = self.tokens.issue_from_code(redeemed.client_id, redeemed.user_id)
        except AuthorizationError as e:
            self._emit(EVENT_TOKEN_ISSUED, OUTCOME_FAIL, client_id=client_id, error=e)
            raise
        self._emit(EVENT_TOKEN_ISSUED, client_id=pair.client_id, user_id=pair.user_id)
        return pair

    def get_protected_resource(self, access_token: str) -> User:
        """Resolve the user bound to a live access token. Every failure is Unauthorized."""
        try:
            pair = self.tokens.validate_access_token(access_token)
            user = self.identities.lookup(pair.user_id)
        except NotFoundError as e:
            self._emit(EVENT_RESOURCE_ACCESS, OUTCOME_FAIL, error=e)
            raise Unauthorized() from e
        self._emit(EVENT_RESOURCE_ACCESS, client_id=pair.client_id, user_id=user.id)
        return user

    def refresh(self, refresh_token: str) -> TokenPair:
        try:
            pair = self.tokens.rotate(refresh_token)
        except AuthorizationError as e:
            self._emit(EVENT_TOKEN_REFRESHED, OUTCOME_FAIL, error=e)
            raise
        self._emit(EVENT_TOKEN_REFRESHED, client_id=pair.client_id, user_id=pair.user_id)
        return pair

    def revoke(self, token: str, client_id: str, client_secret: str | None) -> bool:
        """
        Revoke the pair holding token if it was issued to client_id.
        Unknown tokens and tokens of other clients are ignored (RFC 7009); returns whether anything was revoked.
        """
        if not self.clients.verify_secret(client_id, client_secret):
            error = InvalidClientCredentials()
            self._emit(EVENT_TOKEN_REVOKED, OUTCOME_FAIL, client_id=client_id, error=error)
            raise error
        pair = self.tokens.lookup(token)
        if pair is None or pair.client_id != client_id:
            return False
        revoked = self.tokens.revoke(token)
        if revoked is None:
            return False
        self._emit(EVENT_TOKEN_REVOKED, client_id=revoked.client_id, user_id=revoked.user_id)
        return True

    def sweep_expired(self) -> tuple[int, int]:
        """Garbage-collect dead codes and token pairs. Returns (codes_removed, pairs_removed)."""
        return self.codes.purge_expired(), self.tokens.purge_expired()


def build_authorization_engine(
    database: Database,
    *,
    code_ttl: int = CODE_TTL_SECONDS,
    access_ttl: int = ACCESS_TOKEN_EXPIRES,
    refresh_ttl: int = REFRESH_TOKEN_EXPIRES,
    rotate_refresh_token: bool = ROTATE_REFRESH_TOKEN,
    clock: Callable[[], datetime] = utc_now,
    event_hook: EventHook | None = None,
) -> AuthorizationEngine:
    """Fresh stores over one database, wired into an engine."""
    return AuthorizationEngine(
        clients=ClientRegistry(database),
        identities=IdentityStore(database),
        codes=CodeIssuer(database, code_ttl=code_ttl, clock=clock),
        tokens=TokenIssuer(
            database,
            access_ttl=access_ttl,
            refresh_ttl=refresh_ttl,
            rotate_refresh_token=rotate_refresh_token,
            clock=clock,
        ),
        event_hook=event_hook,
    )
