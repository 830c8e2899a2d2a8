from mongoengine import EmailField, StringField, BooleanField, DateTimeField, UUIDField
import uuid

from .base_model_db import TimestampedDocument

class User(TimestampedDocument):
    meta = {
        'collection': 'users',
        'indexes': ['email']
    }

    id = UUIDField(primary_key=True, default=uuid.uuid4)
    email = EmailField(required=True, unique=True) # Always stored lowercase
    name = StringField(max_length=255)
    avatar_url = StringField() # URL or path to picture
    is_active = BooleanField(default=True)
    last_login = DateTimeField()
    hashed_password = StringField(required=True)

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower()
        return super(User, self).save(*args, **kwargs)

    def __str__(self):
        return self.email

    def to_pydantic(self):
        from workboard.models.user_models import UserPublic # Local import to avoid circular dependency issues
        return UserPublic(
            id=self.id,
            email=self.email,
            name=self.name,
            avatar_url=self.avatar_url,
            is_active=self.is_active,
            last_login=self.last_login,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
