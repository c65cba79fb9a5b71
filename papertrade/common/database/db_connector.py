from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
import logging

from papertrade.common.config import settings

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

logger.debug(f"데이터베이스 URL: {SQLALCHEMY_DATABASE_URL}")

connect_args = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    # FastAPI 스레드풀에서 같은 커넥션을 공유할 수 있도록 허용
    connect_args["check_same_thread"] = False

engine = create_engine(SQLALCHEMY_DATABASE_URL, echo=settings.SQL_ECHO, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        logger.debug("DB 세션 시작.")
        yield db
    finally:
        db.close()
        logger.debug("DB 세션 종료.")

def init_db():
    """모든 모델을 임포트한 뒤 테이블을 생성합니다. (이미 있는 테이블은 건너뜀)"""
    import papertrade.common.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("데이터베이스 테이블 생성/확인 완료.")
