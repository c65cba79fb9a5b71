from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from papertrade.api.auth.jwt_handler import get_current_active_user
from papertrade.api.services.auth_service import AuthService
from papertrade.common.database.db_connector import get_db
from papertrade.common.models.user import User
from papertrade.common.schemas.result import OperationResult
from papertrade.common.schemas.user import UserCreate, UserLogin, UserRead
from papertrade.common.utils.exceptions import InvalidCredentialsException, UserAlreadyExistsException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def get_auth_service():
    return AuthService()

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, db: Session = Depends(get_db), auth_service: AuthService = Depends(get_auth_service)):
    """이메일/비밀번호로 회원가입"""
    logger.debug(f"회원가입 시도: email={user.email}")
    try:
        db_user = auth_service.register(db, user)
    except UserAlreadyExistsException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return OperationResult.ok(UserRead.model_validate(db_user), message="User registered successfully")

@router.post("/login")
def login(credentials: UserLogin, db: Session = Depends(get_db), auth_service: AuthService = Depends(get_auth_service)):
    try:
        token = auth_service.login_user(db, credentials.email, credentials.password)
    except InvalidCredentialsException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return OperationResult.ok(token, message="Login successful")

@router.get("/me")
def read_me(current_user: User = Depends(get_current_active_user)):
    return OperationResult.ok(UserRead.model_validate(current_user))
