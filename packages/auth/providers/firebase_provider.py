"""Firebase Auth provider implementation."""

import hashlib
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from fastapi import HTTPException, status

from common.core.config import settings
from common.core.exceptions import ValidationError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.providers.caching.decorators import cache
from packages.auth.providers.interface import IdentityProviderInterface
from packages.auth.providers.models import (
    IdentityAccount,
    IdentityClaims,
    IdentityProvider,
    NewAccount,
)

logger = get_logger(__name__)

# Firebase Admin SDK initialization (uses Workload Identity automatically on GKE)
_firebase_app: Optional[firebase_admin.App] = None


def _get_firebase_app() -> firebase_admin.App:
    """Get or initialize Firebase Admin app."""
    global _firebase_app
    if _firebase_app is None:
        project_id = settings.firebase_project_id or settings.google_project_id
        if not project_id:
            raise ValueError(
                "Firebase configuration missing: firebase_project_id or google_project_id required"
            )

        # Load credentials explicitly if path is provided (local dev)
        # On GKE with Workload Identity, this will be None and ADC is used
        cred = None
        if settings.google_application_credentials:
            cred = credentials.Certificate(settings.google_application_credentials)

        _firebase_app = firebase_admin.initialize_app(
            credential=cred, options={"projectId": project_id}
        )
        logger.info(f"Firebase Admin SDK initialized for project: {project_id}")
    return _firebase_app


def token_cache_key(token: str) -> str:
    """Cache key for a verified token. The raw token never reaches the cache."""
    return f"auth:token:{hashlib.sha256(token.encode()).hexdigest()}"


class FirebaseIdentityProvider(IdentityProviderInterface):
    """Firebase Auth provider implementation."""

    def __init__(self):
        """Initialize Firebase provider."""
        self.app = _get_firebase_app()

    @trace_span
    @cache(
        model_type=IdentityClaims,
        ttl=settings.token_cache_ttl_seconds,
        key_generator=token_cache_key,
    )
    async def verify_token(self, token: str) -> IdentityClaims:
        """Verify a Firebase ID token. Verified claims are cached for five minutes."""
        try:
            decoded_token = firebase_auth.verify_id_token(token, app=self.app)
            uid = decoded_token.get("uid")
            if not uid:
                raise ValueError("Token missing 'uid' claim")
            return IdentityClaims(uid=uid, email=decoded_token.get("email"))
        except firebase_auth.ExpiredIdTokenError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Firebase token has expired",
            )
        except firebase_auth.InvalidIdTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid Firebase token: {str(e)}",
            )
        except Exception as e:
            logger.warning(f"Firebase token verification failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
            )

    @trace_span
    async def create_user(self, account: NewAccount) -> IdentityAccount:
        """Create a Firebase Auth user."""
        try:
            user_record = firebase_auth.create_user(
                email=account.email,
                password=account.password,
                display_name=account.display_name or None,
                phone_number=account.phone_number,
                email_verified=account.email_verified,
                app=self.app,
            )
        except firebase_auth.EmailAlreadyExistsError:
            raise ValidationError("Email already exists", {"email": account.email})

        logger.info("Created Firebase user", extra={"uid": user_record.uid})
        return IdentityAccount(
            uid=user_record.uid,
            email=user_record.email or account.email,
            display_name=user_record.display_name,
        )

    @trace_span
    async def delete_user(self, uid: str) -> None:
        """Delete a Firebase Auth user."""
        try:
            firebase_auth.delete_user(uid, app=self.app)
            logger.info("Deleted Firebase user", extra={"uid": uid})
        except firebase_auth.UserNotFoundError:
            logger.warning(f"Firebase user {uid} already deleted")

    def get_provider_name(self) -> IdentityProvider:
        """Return provider identifier."""
        return IdentityProvider.FIREBASE
