"""Sign-in sessions backed by the atproto SDK.

A sign-in exchanges a handle and app password for an SDK session, which is
exported and stored against an opaque token; later requests rebuild an
authenticated client from that token.
"""
import secrets
from typing import Callable, Optional

from atproto import Client
from atproto_core.exceptions import AtProtocolError

from mysky import config
from mysky.logger import logger
from mysky.models import Session


def normalize_handle(handle: str) -> str:
    handle = handle.strip()
    return handle[1:] if handle.startswith("@") else handle


class AuthManager:
    def __init__(self, pds_host: Optional[str] = config.PDS_HOST, client_factory: Optional[Callable[[], Client]] = None):
        self.pds_host = pds_host
        self._client_factory = client_factory

    @property
    def client_factory(self) -> Callable[[], Client]:
        if self._client_factory is None:
            pds_host = self.pds_host
            self._client_factory = lambda: Client(base_url=pds_host) if pds_host else Client()
        return self._client_factory

    def sign_in(self, handle: str, password: str) -> Session:
        client = self.client_factory()
        client.login(normalize_handle(handle), password)
        session = Session.create(
            token=secrets.token_urlsafe(32),
            did=client.me.did,
            handle=client.me.handle,
            session_string=client.export_session_string(),
        )
        logger.info("Signed in %s (%s)", session.handle, session.did)
        return session

    def get_session(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        return Session.get_or_none(Session.token == token)

    def _persist_refresh(self, session: Session, client: Client):
        def on_change(*_):
            session.session_string = client.export_session_string()
            session.save()
        return on_change

    def get_client(self, token: Optional[str]) -> Optional[Client]:
        session = self.get_session(token)
        if session is None:
            return None

        client = self.client_factory()
        try:
            client.login(session_string=session.session_string)
        except AtProtocolError as e:
            logger.warning("Stored session for %s is no longer valid: %s", session.did, e)
            return None
        client.on_session_change(self._persist_refresh(session, client))
        return client

    def logout(self, token: Optional[str]) -> None:
        session = self.get_session(token)
        if session is None:
            return

        client = self.get_client(token)
        if client is not None:
            try:
                client.com.atproto.server.delete_session()
            except AtProtocolError as e:
                logger.warning("Could not revoke session for %s: %s", session.did, e)
        session.delete_instance()
        logger.info("Logged out %s", session.did)
