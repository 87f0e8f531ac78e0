"""Account system for termfolio.

Provides the credential service client, token persistence, and the
session store whose snapshots drive the terminal prompt.
"""

from termfolio.auth.client import CredentialService
from termfolio.auth.errors import CredentialError
from termfolio.auth.session import SessionStore
from termfolio.auth.token_store import FileTokenStore, MemoryTokenStore, TokenStore

__all__ = [
    "CredentialError",
    "CredentialService",
    "FileTokenStore",
    "MemoryTokenStore",
    "SessionStore",
    "TokenStore",
]
