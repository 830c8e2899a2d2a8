from typing import Optional
from datetime import timedelta
import logging

from mongoengine.errors import ValidationError

from workboard.models.user_models import UserCreate
from workboard.db.models.user_model_db import User as UserDB
from workboard.db.redis_db import RedisStore
from workboard.utils.security import get_password_hash, verify_password, create_access_token
from workboard.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, store: RedisStore):
        self.store = store

    def register_user(self, user_create: UserCreate) -> UserDB:
        # Emails are compared lowercase everywhere
        if UserDB.objects(email=user_create.email.lower()).first():
            raise ValueError("Email already registered")

        db_user = UserDB(
            email=user_create.email,
            name=user_create.name,
            avatar_url=user_create.avatar_url,
            hashed_password=get_password_hash(user_create.password),
        )
        db_user.save()
        logger.info(f"Registered user {db_user.id}")
        return db_user

    def authenticate_user(self, email: str, password: str) -> Optional[UserDB]:
        user = UserDB.objects(email=email.lower()).first()
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None

        user.last_login = utcnow()
        user.save()
        return user

    def create_user_access_token(self, user: UserDB, expires_delta_minutes: Optional[int] = None) -> str:
        expires_delta = timedelta(minutes=expires_delta_minutes) if expires_delta_minutes else None
        return create_access_token(self.store, subject=str(user.id), expires_delta=expires_delta)

    def get_user_by_id(self, user_id: str) -> Optional[UserDB]:
        try:
            return UserDB.objects(id=user_id).first()
        except (ValueError, ValidationError): # Invalid UUID format
            return None

    def get_user_by_email(self, email: str) -> Optional[UserDB]:
        return UserDB.objects(email=email.lower()).first()
