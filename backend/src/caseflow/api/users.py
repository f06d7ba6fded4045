"""API endpoints for the user directory."""

from fastapi import APIRouter, Depends

from ..cases.models import UserRole
from ..errors import NotFound
from ..users import UserAccount, UserDirectory, get_user_directory
from . import ListResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserAccount, status_code=201)
async def create_user(
    account: UserAccount,
    directory: UserDirectory = Depends(get_user_directory),
) -> UserAccount:
    """Register an account under its role."""
    return await directory.create_user(account)


@router.get("", response_model=ListResponse[UserAccount])
async def list_users(
    role: UserRole,
    directory: UserDirectory = Depends(get_user_directory),
) -> ListResponse[UserAccount]:
    items = await directory.get_users_by_role(role)
    return ListResponse[UserAccount](items=items, total=len(items))


@router.get("/{user_id}", response_model=UserAccount)
async def get_user(
    user_id: str,
    role: UserRole | None = None,
    directory: UserDirectory = Depends(get_user_directory),
) -> UserAccount:
    account = await directory.get_user(user_id, role)
    if account is None:
        raise NotFound("users", user_id)
    return account


@router.get("/{lawyer_id}/clients", response_model=ListResponse[UserAccount])
async def get_clients_for_lawyer(
    lawyer_id: str,
    directory: UserDirectory = Depends(get_user_directory),
) -> ListResponse[UserAccount]:
    """Client accounts on a lawyer's roster."""
    items = await directory.get_clients_for_lawyer(lawyer_id)
    return ListResponse[UserAccount](items=items, total=len(items))
