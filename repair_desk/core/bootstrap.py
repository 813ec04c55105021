"""
Administrative account bootstrap.

Makes sure the designated admin identity and its superAdmin role record exist.
Safe to run on every start:
- record present: nothing to do
- identity missing: sign up, then write the record
- identity present but record missing: sign in, then backfill the record
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..config import Collections, Settings, get_settings
from ..exceptions import AuthProviderError, RemoteServiceError
from ..models import Role, UserProfile
from ..services.auth import AuthService

logger = logging.getLogger(__name__)


def _already_registered(error: AuthProviderError) -> bool:
    if error.code in ("user_already_exists", "email_exists"):
        return True
    message = error.message.lower()
    return "already registered" in message or "already exists" in message


async def ensure_admin_account(auth: AuthService, settings: Optional[Settings] = None) -> Dict[str, Any]:
    settings = settings or get_settings()
    email = settings.ADMIN_EMAIL
    if not settings.ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD not set; skipping admin account bootstrap")
        return {"success": False, "skipped": True, "error": "ADMIN_PASSWORD not set"}

    try:
        existing = await auth.remote.select(Collections.USERS, {"email": email})
    except RemoteServiceError as e:
        logger.error(f"❌ Error checking admin account: {e}")
        return {"success": False, "error": str(e)}
    if existing:
        logger.info("Admin account already exists")
        return {"success": True, "created": False}

    try:
        try:
            identity = await auth.provider.sign_up(email, settings.ADMIN_PASSWORD, settings.ADMIN_FULL_NAME,
                                                   settings.ADMIN_PHONE)
            logger.info("Creating admin account...")
        except AuthProviderError as e:
            if not _already_registered(e):
                raise
            logger.info("Admin identity exists without a role record; backfilling")
            identity = await auth.provider.sign_in(email, settings.ADMIN_PASSWORD)

        profile = UserProfile(
            uid=identity.uid,
            email=email,
            full_name=settings.ADMIN_FULL_NAME,
            phone_number=settings.ADMIN_PHONE,
            role=Role.SUPER_ADMIN,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        await auth.remote.upsert(Collections.USERS, profile.model_dump(mode="json", exclude_none=True),
                                 on_conflict="uid")
        # leave no provider session behind
        await auth.provider.sign_out()
    except (AuthProviderError, RemoteServiceError) as e:
        logger.error(f"❌ Error initializing admin account: {e}")
        return {"success": False, "error": str(e)}

    logger.info(f"✅ Admin account ready: {email}")
    return {"success": True, "created": True, "uid": identity.uid}
