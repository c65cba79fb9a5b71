import pytest
from datetime import datetime
from pydantic import ValidationError

from papertrade.common.schemas.user import Token, TokenData, UserCreate, UserLogin, UserRead


def test_user_create_valid():
    user = UserCreate(email="test@example.com", password="password123")
    assert user.email == "test@example.com"
    assert user.full_name is None


def test_user_create_invalid_email():
    with pytest.raises(ValidationError):
        UserCreate(email="invalid-email", password="password123")


def test_user_create_short_password():
    with pytest.raises(ValidationError):
        UserCreate(email="test@example.com", password="12345")


def test_user_login_missing_fields():
    with pytest.raises(ValidationError):
        UserLogin(email="test@example.com")


def test_token_wraps_user_read():
    now = datetime.now()
    user = UserRead(id=1, email="test@example.com", role="user", is_active=True, created_at=now)

    token = Token(access_token="abc", token_type="bearer", user=user)

    assert token.user.id == 1
    assert token.user.last_login is None
    assert TokenData().email is None
