import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from papertrade.api.auth.jwt_handler import create_access_token
from papertrade.common.config import settings
from papertrade.common.schemas.user import UserCreate, UserRead
from papertrade.common.services.user_service import UserService
from papertrade.common.utils.exceptions import InvalidCredentialsException, UserAlreadyExistsException
from papertrade.common.utils.password_utils import verify_password

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, user_service: UserService = None):
        self.user_service = user_service or UserService()

    def register(self, db: Session, user: UserCreate):
        """새로운 사용자를 생성합니다. 지갑은 첫 원장 접근 시 생성된다."""
        if self.user_service.get_user_by_email(db, user.email):
            raise UserAlreadyExistsException(f"User with email {user.email} already exists")
        try:
            return self.user_service.create_user(db, user)
        except IntegrityError as e:
            # 동시에 같은 이메일로 가입한 경우
            logger.warning(f"사용자 생성 중 중복 발생: {e}")
            raise UserAlreadyExistsException(f"User with email {user.email} already exists")

    def authenticate_user(self, db: Session, email: str, password: str):
        """사용자 인증"""
        user = self.user_service.get_user_by_email(db, email)
        if not user or not user.is_active:
            return None
        if not verify_password(password, user.hashed_password):
            logger.debug(f"[AuthService] Password verification failed for {email}")
            return None
        return user

    def login_user(self, db: Session, email: str, password: str) -> dict:
        """사용자 로그인"""
        user = self.authenticate_user(db, email, password)
        if not user:
            raise InvalidCredentialsException("Invalid email or password")

        self.user_service.update_last_login(db, user)
        access_token = create_access_token(
            data={"sub": user.email, "role": user.role, "user_id": user.id},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        logger.info(f"로그인 성공: {user.email}")
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "user": UserRead.model_validate(user),
        }
