"""
User 모델 정의 파일입니다.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, func
from papertrade.common.database.db_connector import Base


class User(Base):
    """
    app_users 테이블과 매핑되는 User 모델 클래스입니다.

    Attributes:
        id (Integer): 사용자의 고유 ID.
        email (String): 로그인에 사용하는 이메일 (고유).
        hashed_password (String): 해시된 사용자 비밀번호.
        full_name (String): 사용자 전체 이름.
        role (String): 사용자 역할 (e.g., 'user', 'admin').
        is_active (Boolean): 계정 활성 상태.
        last_login (DateTime): 마지막 로그인 시간.
        created_at (DateTime): 계정 생성 시간.
        updated_at (DateTime): 계정 정보 마지막 수정 시간.
    """
    __tablename__ = 'app_users'

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=True)
    role = Column(String(20), default='user', nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
