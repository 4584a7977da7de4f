from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from ..auth import (
    authenticate_user,
    create_access_token,
    create_user,
    get_current_user,
    require_role,
)
from ..db import engine
from ..envelope import ok
from ..models import User
from ..schemas.users import UserCreate

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/auth/token")
def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=400, detail="Incorrect username or password")
    access_token = create_access_token(data={"sub": user.username})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/users/me")
def read_users_me(current_user: User = Depends(get_current_user)):
    return ok({"username": current_user.username, "role": current_user.role})


@router.post("/users", dependencies=[Depends(require_role("admin"))])
def add_user(payload: UserCreate):
    with Session(engine) as session:
        with session.begin():
            user = create_user(session, payload.username, payload.password, payload.role)
            data = {"id": user.id, "username": user.username, "role": user.role}
    return ok(data, "User created")
