from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import logging

from fastapi import APIRouter, Depends, Request, status
from jose import JWTError, jwt
import bcrypt
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, SECRET_KEY
from ..database import get_db
from ..errors import AuthError, ConflictError
from ..models import User
from ..schemas.user import LoginRequest, RegisterRequest, UserSummary
from ..validation import validated_body

router = APIRouter()
logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
INVALID_CREDENTIALS = "Invalid credentials"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode('utf-8')[:72]
    hashed_bytes = hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
    return bcrypt.checkpw(password_bytes, hashed_bytes)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt directly."""
    password_bytes = password.encode('utf-8')[:72]  # Truncate to 72 bytes (bcrypt limit)
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user for a valid email/password pair, else None."""
    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.warning("Login attempt with non-existent email: %s", email)
        return None
    if not verify_password(password, user.hashed_password):
        logger.warning("Failed login attempt for user: %s", user.id)
        return None
    return user


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> Tuple[str, datetime]:
    """Create a JWT access token carrying only the user id. Returns the token and its expiry."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    token = jwt.encode({"sub": user_id, "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)
    return token, expire


def decode_access_token(token: str) -> Optional[str]:
    """Return the user id from a token, or None if it is malformed, expired, or wrongly signed."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        return None
    return user_id


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def _auth_payload(user: User, message: str) -> dict:
    token, expires_at = create_access_token(user.id)
    return {
        "success": True,
        "message": message,
        "token": token,
        "expiresAt": expires_at.isoformat(),
        "user": UserSummary.model_validate(user).model_dump(),
    }


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to its user. Every protected route depends on this."""
    token = _get_token_from_request(request)
    if not token:
        raise AuthError("Not authorized, no token")

    user_id = decode_access_token(token)
    if not user_id:
        raise AuthError("Not authorized, token failed")

    user = db.get(User, user_id)
    if user is None:
        raise AuthError("Not authorized, user not found")
    return user


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest = Depends(validated_body(RegisterRequest)),
    db: Session = Depends(get_db),
):
    """Create a new user account."""
    existing = db.query(User).filter(
        or_(User.email == payload.email, User.username == payload.username)
    ).first()
    if existing:
        logger.warning("Registration failed: email or username already exists")
        raise ConflictError()

    db_user = User(
        username=payload.username,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration with the same identity
        db.rollback()
        logger.warning("Registration failed: email or username already exists")
        raise ConflictError()
    db.refresh(db_user)

    logger.info("New user registered: %s", db_user.id)
    return _auth_payload(db_user, "User registered successfully")


@router.post("/login")
def login(
    payload: LoginRequest = Depends(validated_body(LoginRequest)),
    db: Session = Depends(get_db),
):
    """Sign in and get a JWT token."""
    db_user = authenticate_user(db, payload.email, payload.password)
    if not db_user:
        raise AuthError(INVALID_CREDENTIALS)

    logger.info("User logged in: %s", db_user.id)
    return _auth_payload(db_user, "Login successful")


@router.get("/me")
def read_users_me(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return {
        "success": True,
        "data": UserSummary.model_validate(current_user).model_dump(),
    }
