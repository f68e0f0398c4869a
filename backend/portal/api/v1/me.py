"""Current user endpoint."""

from fastapi import APIRouter
from pydantic import BaseModel

from portal.api.deps import CurrentUserDep
from portal.core.responses import DataResponse

router = APIRouter()


class MeResponse(BaseModel):
    """Response data for GET /me."""

    id: str
    email: str
    name: str
    role: str
    permissions: list[str]


@router.get("")
async def get_me(user: CurrentUserDep) -> DataResponse[MeResponse]:
    """Return the signed-in user and the permissions their role grants."""
    return DataResponse(
        data=MeResponse(
            id=user.id,
            email=user.email,
            name=user.name,
            role=str(user.role),
            permissions=sorted(str(p) for p in user.permissions),
        )
    )
