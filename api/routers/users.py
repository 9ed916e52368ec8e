"""
User API Endpoints.

Staff records referenced as sale handlers. No authentication here.
"""

from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_user_service
from api.errors import to_http_exception, unexpected_error
from api.models import UserCreateRequest, UserResponse
from domain.errors import DealershipError
from services.user_service import UserService

router = APIRouter()


@router.get("/users", response_model=List[UserResponse], summary="List Users")
def list_users(service: UserService = Depends(get_user_service)):
    try:
        users = service.list_users()
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("list users")
    return [UserResponse.from_domain(u) for u in users]


@router.post("/users", response_model=UserResponse, status_code=201, summary="Create User")
def create_user(request: UserCreateRequest, service: UserService = Depends(get_user_service)):
    try:
        user = service.create_user(**request.model_dump())
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("create user")
    return UserResponse.from_domain(user)


@router.get("/users/{user_id}", response_model=UserResponse, summary="Get User")
def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    try:
        user = service.get_user(user_id)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("get user")
    return UserResponse.from_domain(user)
