from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from papertrade.common.models.user import User
from papertrade.common.schemas.user import UserCreate
from papertrade.common.utils.password_utils import get_password_hash
from papertrade.common.utils.time_utils import utcnow
import logging

logger = logging.getLogger(__name__)

class UserService:
    def get_user_by_id(self, db: Session, user_id: int):
        logger.debug(f"get_user_by_id 호출: user_id={user_id}")
        return db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, db: Session, email: str):
        logger.debug(f"get_user_by_email 호출: email={email}")
        return db.query(User).filter(User.email == email.lower()).first()

    def create_user(self, db: Session, user: UserCreate, role: str = "user"):
        logger.debug(f"create_user 호출: email={user.email}")
        db_user = User(
            email=user.email.lower(),
            hashed_password=get_password_hash(user.password),
            full_name=user.full_name,
            role=role,
        )
        try:
            db.add(db_user)
            db.commit()
            db.refresh(db_user)
            logger.info(f"사용자 생성 성공: email={db_user.email}, id={db_user.id}")
            return db_user
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"사용자 생성 실패: {e}", exc_info=True)
            raise

    def update_last_login(self, db: Session, user: User):
        try:
            user.last_login = utcnow()
            db.commit()
            db.refresh(user)
            return user
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"마지막 로그인 시간 갱신 실패: {e}", exc_info=True)
            raise
