from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from httpx_oauth.clients.google import GoogleOAuth2
from httpx_oauth.exceptions import HTTPXOAuthError
from jose import JWTError
from pydantic import ValidationError
import logging
import secrets
from typing import Optional

from workboard.config.settings import settings
from workboard.core.errors import AppError
from workboard.db.models.user_model_db import User as UserDB
from workboard.db.redis_db import RedisStore
from workboard.dependencies import get_auth_service, get_redis_store
from workboard.models.common_models import MessageResponse
from workboard.models.token_models import TokenResponse, TokenClaims
from workboard.models.user_models import UserCreate, UserPublic
from workboard.services.auth_service import AuthService
from workboard.utils.security import decode_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

google_client = GoogleOAuth2(
    client_id=settings.GOOGLE_CLIENT_ID or "dummy_client_id",
    client_secret=settings.GOOGLE_CLIENT_SECRET or "dummy_client_secret",
)

def _bearer_error(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail, headers={"WWW-Authenticate": "Bearer"})

def read_token_claims(token: str, verify_exp: bool = True) -> Optional[TokenClaims]:
    """Subject and jti of ``token``, or None if it cannot be trusted."""
    try:
        payload = decode_access_token(token, verify_exp=verify_exp)
        return TokenClaims(user_id=payload.get("sub"), jti=payload.get("jti"))
    except (JWTError, ValidationError): # Bad signature, expired, missing or malformed claims
        return None

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    store: RedisStore = Depends(get_redis_store),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserDB:
    claims = read_token_claims(token)
    if claims is None:
        raise _bearer_error("Could not validate credentials")
    if not store.is_token_jti_valid(claims.jti):
        raise _bearer_error("Token has been revoked")

    user = auth_service.get_user_by_id(user_id=str(claims.user_id))
    if user is None:
        raise _bearer_error("Could not validate credentials")
    return user

async def get_current_active_user(current_user: UserDB = Depends(get_current_user)) -> UserDB:
    if not current_user.is_active:
        raise AppError.bad_request("Inactive user")
    return current_user

def _issue_token(auth_service: AuthService, user: UserDB) -> TokenResponse:
    return TokenResponse(access_token=auth_service.create_user_access_token(user=user), user=user.to_pydantic())

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user_endpoint(user_in: UserCreate, auth_service: AuthService = Depends(get_auth_service)):
    try:
        user_db = auth_service.register_user(user_in)
    except ValueError as e:
        raise AppError.bad_request(str(e))
    # Registration logs the user in
    return _issue_token(auth_service, user_db)

@router.post("/login", response_model=TokenResponse)
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), auth_service: AuthService = Depends(get_auth_service)):
    user = auth_service.authenticate_user(email=form_data.username, password=form_data.password)
    if not user:
        raise _bearer_error("Incorrect username or password")
    return _issue_token(auth_service, user)

async def get_logout_claims(token: str = Depends(oauth2_scheme)) -> TokenClaims:
    # Expired tokens can still be revoked
    claims = read_token_claims(token, verify_exp=False)
    if claims is None:
        raise _bearer_error("Invalid token for logout")
    return claims

@router.post("/logout", response_model=MessageResponse)
async def logout_endpoint(claims: TokenClaims = Depends(get_logout_claims), store: RedisStore = Depends(get_redis_store)):
    store.revoke_token_jti(jti=claims.jti, user_id=str(claims.user_id))
    return MessageResponse(message="Logout successful. Token has been revoked.")

@router.post("/logout-all", response_model=MessageResponse)
async def logout_all_devices_endpoint(current_user: UserDB = Depends(get_current_active_user), store: RedisStore = Depends(get_redis_store)):
    store.revoke_all_user_tokens(user_id=str(current_user.id))
    return MessageResponse(message="Logged out from all devices successfully.")

@router.get("/users/me", response_model=UserPublic)
async def read_users_me(current_user: UserDB = Depends(get_current_active_user)):
    return current_user.to_pydantic()

def _require_google() -> None:
    if not (settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET and settings.GOOGLE_REDIRECT_URI):
        raise AppError("Google sign-in is not configured", status.HTTP_503_SERVICE_UNAVAILABLE)

@router.get("/google")
async def auth_google():
    _require_google()
    authorization_url = await google_client.get_authorization_url(
        settings.GOOGLE_REDIRECT_URI, scope=["openid", "email", "profile"], extras_params={"access_type": "offline"}
    )
    return RedirectResponse(authorization_url)

@router.get("/google/callback", response_model=TokenResponse)
async def auth_google_callback(code: str, auth_service: AuthService = Depends(get_auth_service)):
    _require_google()
    try:
        google_token = await google_client.get_access_token(code, settings.GOOGLE_REDIRECT_URI)
        _, email = await google_client.get_id_email(google_token["access_token"])
    except HTTPXOAuthError as e:
        raise AppError.bad_request("Google sign-in failed", internal_message=f"OAuth error: {e}")
    if not email:
        raise AppError.bad_request("Google account has no email address")

    user = auth_service.get_user_by_email(email=email)
    if user is None:
        # Password login stays impossible for accounts created this way
        user = auth_service.register_user(
            UserCreate(email=email, name=email.split("@")[0], password=secrets.token_urlsafe(32))
        )
        logger.info(f"Created account {user.id} from Google sign-in")
    return _issue_token(auth_service, user)
