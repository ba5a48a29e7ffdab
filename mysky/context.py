from dataclasses import dataclass, field
from typing import Any, Optional

from mysky.auth import AuthManager
from mysky.exceptions import NotAuthenticatedError
from mysky.pds import PublicRepo, build_public_repo


@dataclass
class RepoContext:
    """What a record operation needs: the public reader and, for writes, an SDK client."""
    public: PublicRepo
    client: Optional[Any] = None

    @property
    def did(self) -> Optional[str]:
        if self.client is None:
            return None
        me = getattr(self.client, "me", None)
        return getattr(me, "did", None)

    def require_did(self) -> str:
        did = self.did
        if not did:
            raise NotAuthenticatedError()
        return did

    def require_client(self):
        self.require_did()
        return self.client


@dataclass
class AppContext:
    """Process-level state: the PDS address cache (inside ``public``) and sign-in sessions."""
    public: PublicRepo = field(default_factory=build_public_repo)
    auth: AuthManager = field(default_factory=AuthManager)

    def for_token(self, token: Optional[str]) -> RepoContext:
        return RepoContext(public=self.public, client=self.auth.get_client(token))

    def anonymous(self) -> RepoContext:
        return RepoContext(public=self.public)
