"""User directory over the role-partitioned user collections.

Accounts live in ``users_clients``, ``users_lawyers``, ``users_judges`` and
``users_clerks``. Authentication is handled elsewhere; this module only
answers "who is this id, and in which role".
"""

import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .cases.models import GovernmentIdType, UserRole, new_id, utc_now
from .errors import Forbidden, NotFound
from .store import SERVER_TIMESTAMP, ArrayUnion, DocumentNotFound, DocumentStore, get_document_store

logger = logging.getLogger(__name__)


def user_collection(role: UserRole | str) -> str:
    """Collection holding accounts of a role."""
    return f"users_{UserRole(role).value}s"


class UserAccount(BaseModel):
    """Account profile as stored in its role collection."""

    id: str = Field(default_factory=new_id)
    role: UserRole
    name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""
    government_id_type: GovernmentIdType | None = None
    government_id_number: str = ""
    # lawyers
    bar_id: str | None = None
    clients: list[str] = Field(default_factory=list)
    # judges
    chamber_number: str | None = None
    court_district: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(use_enum_values=True)


class UserDirectory:
    """Read and roster operations on user accounts."""

    def __init__(self, store: DocumentStore | None = None):
        self._store = store or get_document_store()

    async def create_user(self, account: UserAccount) -> UserAccount:
        """Register an account under its role."""
        document = account.model_dump(exclude={"id"})
        document["created_at"] = SERVER_TIMESTAMP
        await self._store.create(user_collection(account.role), document, document_id=account.id)
        logger.info(f"Registered {account.role} account {account.id}")
        return await self.get_user(account.id, account.role)

    async def get_user(self, user_id: str, role: UserRole | str | None = None) -> UserAccount | None:
        """Look an account up, in one role collection or across all of them."""
        roles = [UserRole(role)] if role else list(UserRole)
        for candidate in roles:
            record = await self._store.get_by_id(user_collection(candidate), user_id)
            if record is not None:
                record["role"] = candidate.value
                return UserAccount.model_validate(record)
        return None

    async def require_user(self, user_id: str, role: UserRole | str) -> UserAccount:
        """Fetch an account of a role or raise NotFound."""
        account = await self.get_user(user_id, role)
        if account is None:
            raise NotFound(user_collection(role), user_id)
        return account

    async def require_role(self, user_id: str, role: UserRole | str) -> UserAccount:
        """Fetch an account, raising Forbidden when it does not hold the role."""
        account = await self.get_user(user_id, role)
        if account is None:
            raise Forbidden(
                f"Account {user_id} is not registered as {UserRole(role).value}",
                user_id=user_id,
                required_role=UserRole(role).value,
            )
        return account

    async def get_users_by_role(self, role: UserRole | str) -> list[UserAccount]:
        records = await self._store.query(user_collection(role))
        return [UserAccount.model_validate({**r, "role": UserRole(role).value}) for r in records]

    async def add_client_to_roster(self, lawyer_id: str, client_id: str) -> list[str]:
        """Add a client to a lawyer's roster. Re-adding is a no-op.

        Returns:
            The roster after the write
        """
        collection = user_collection(UserRole.LAWYER)
        try:
            updated = await self._store.update(
                collection, lawyer_id, {"clients": ArrayUnion(client_id)}
            )
        except DocumentNotFound as e:
            raise NotFound(collection, lawyer_id) from e
        return list(updated.get("clients") or [])

    async def get_clients_for_lawyer(self, lawyer_id: str) -> list[UserAccount]:
        """Resolve a lawyer's roster to client accounts, skipping unknown ids."""
        lawyer = await self.require_user(lawyer_id, UserRole.LAWYER)
        clients = []
        for client_id in lawyer.clients:
            account = await self.get_user(client_id, UserRole.CLIENT)
            if account is not None:
                clients.append(account)
        return clients

    async def display_name(self, user_id: str, role: UserRole | str, fallback: str) -> str:
        """Name to snapshot onto another record; tolerates a missing account."""
        account = await self.get_user(user_id, role)
        return account.name if account else fallback


# Singleton instance
_directory: UserDirectory | None = None


def get_user_directory() -> UserDirectory:
    """Get the user directory singleton."""
    global _directory
    if _directory is None:
        _directory = UserDirectory()
    return _directory
