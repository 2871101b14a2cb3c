from fastapi import APIRouter, Depends, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnify.auth.dependencies import Principal, get_current_user
from learnify.core.database import get_db
from learnify.core.errors import raise_for_result
from learnify.users.user_models import LoginRequest, RegisterRequest
from learnify.users.user_service import UserService

router = APIRouter(tags=["Auth"])


def get_user_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("/register", status_code=201)
async def register(
    payload: RegisterRequest,
    service: UserService = Depends(get_user_service),
):
    result = raise_for_result(await service.register(payload.name, payload.email, payload.password))
    return {"success": True, "message": result.message, "data": result.data}


@router.post("/login")
async def login(
    payload: LoginRequest,
    response: Response,
    service: UserService = Depends(get_user_service),
):
    result = raise_for_result(await service.login(payload.email, payload.password))
    response.headers["Cache-Control"] = "no-store"
    return {"success": True, "message": result.message, "data": result.data}


@router.get("/me")
async def me(
    user: Principal = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    result = raise_for_result(await service.get_profile(user.user_id))
    return {"success": True, "data": {"user": result.data}}
