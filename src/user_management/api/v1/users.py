"""
/api/v1/users: create, read, list, replace and delete users.
"""
from fastapi import APIRouter, Depends, Path, Response, status

from user_management.core.dependencies import get_user_service
from user_management.schemas.user import UserCreateRequest, UserRead, UserUpdateRequest
from user_management.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])

UserId = Path(gt=0, description="Positive integer id of the user")


@router.get("", response_model=list[UserRead])
async def list_users(service: UserService = Depends(get_user_service)):
    return await service.list()


@router.get("/{id}", response_model=UserRead)
async def get_user(id: int = UserId, service: UserService = Depends(get_user_service)):
    return await service.get(id)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreateRequest, service: UserService = Depends(get_user_service)):
    return await service.create(payload)


@router.put("/{id}", response_model=UserRead)
async def update_user(
    payload: UserUpdateRequest,
    id: int = UserId,
    service: UserService = Depends(get_user_service),
):
    return await service.update(id, payload)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_user(id: int = UserId, service: UserService = Depends(get_user_service)):
    await service.delete(id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
