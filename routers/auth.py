import os
import secrets
from typing import Annotated, Optional

from db import SessionDep
from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from itsdangerous import BadSignature, URLSafeTimedSerializer
from models import User
from passlib.context import CryptContext
from schemas import LoginData, UserCreate
from sqlmodel import select

router = APIRouter(tags=["auth"])

SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(60 * 60 * 8)))
serializer = URLSafeTimedSerializer(SECRET_KEY)


pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)

ROLE_FLAGS = {
    "donor": "is_donor",
    "receiver": "is_receiver",
    "volunteer": "is_volunteer",
    "ngo": "is_ngo",
    "admin": "is_admin",
}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def has_role(user: User, role: str) -> bool:
    flag = ROLE_FLAGS.get(role)
    return bool(flag and getattr(user, flag))


def create_session_token(user_id: int, role: str) -> str:
    """
    Store user_id + active role in the signed token.
    Example data:
        {"user_id": 3, "role": "volunteer"}
    """
    return serializer.dumps({"user_id": user_id, "role": role})


def verify_session_token(token: str, max_age_seconds: int = SESSION_MAX_AGE):
    """
    Returns dict {'user_id': ..., 'role': ...} if valid,
    or None if token is invalid/expired.
    """
    try:
        return serializer.loads(token, max_age=max_age_seconds)
    except BadSignature:
        return None


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key="session",
        value=token,
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=SESSION_MAX_AGE,
    )


def get_current_user_and_role(
    session: SessionDep,
    session_token: Optional[str] = Cookie(default=None, alias="session"),
) -> dict:
    """
    Reads the 'session' cookie, verifies the token,
    looks up the user, and returns {"user": User, "role": str}.
    Raises 401 if not logged in / invalid.
    """
    if session_token is None:
        raise HTTPException(status_code=401, detail="Not logged in")

    data = verify_session_token(session_token)
    if not data:
        raise HTTPException(
            status_code=401, detail="Invalid or expired session")

    user = session.get(User, data["user_id"])
    if user is None:
        raise HTTPException(
            status_code=401, detail="User not found for this session")

    if not has_role(user, data["role"]):
        raise HTTPException(
            status_code=401, detail="Role no longer granted to this user")

    return {"user": user, "role": data["role"]}


UserRoleDep = Annotated[dict, Depends(get_current_user_and_role)]


def ensure_role(role: str, *allowed: str) -> None:
    if role != "admin" and role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only {' or '.join(allowed)} users can do this.",
        )


@router.post("/register")
def register(user_in: UserCreate, session: SessionDep):
    """
    Register a new user with a hashed password and log them in
    with the first role they registered for.
    """
    existing = session.exec(
        select(User).where(User.email == user_in.email)
    ).first()

    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    if "admin" in user_in.roles:
        raise HTTPException(
            status_code=403, detail="Admin accounts cannot self-register")

    user = User(
        email=user_in.email,
        name=user_in.name,
        phone=user_in.phone,
        password_hash=hash_password(user_in.password),
        **{ROLE_FLAGS[role]: True for role in user_in.roles},
    )

    session.add(user)
    session.commit()
    session.refresh(user)

    if user.id is None:
        raise HTTPException(
            status_code=500, detail="User was not created successfully"
        )

    role = user_in.roles[0]
    resp = JSONResponse(
        {"message": "Registration successful", "id": user.id, "role": role}
    )
    _set_session_cookie(resp, create_session_token(user.id, role))
    return resp


@router.post("/login")
def login(payload: LoginData, session: SessionDep, response: Response):
    """
    Log in with email + password + the role to act as for this session,
    set a signed cookie.
    """
    user = session.exec(
        select(User).where(User.email == payload.email)
    ).first()

    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=400, detail="Invalid email or password"
        )

    if not has_role(user, payload.role):
        raise HTTPException(
            status_code=400, detail=f"User is not registered as {payload.role}"
        )

    if user.id is None:
        raise HTTPException(
            status_code=500, detail="User has no ID in database"
        )

    _set_session_cookie(response, create_session_token(user.id, payload.role))
    return {"message": "Login successful", "role": payload.role}


@router.post("/logout")
def logout(response: Response):
    """
    Clear the session cookie.
    """
    response.delete_cookie("session")
    return {"message": "Logged out"}


@router.get("/me")
def read_me(current: UserRoleDep):
    """
    Get info about the currently logged-in user + active role.
    """
    user = current["user"]
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": current["role"],
        "roles": [role for role in ROLE_FLAGS if has_role(user, role)],
    }
