"""
Supabase Auth adapter plus the user operations of the back office: registration,
sign in/out, profile edits and role lookups.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from supabase import AsyncClient

from ..config import Collections, Settings, get_settings
from ..exceptions import AuthProviderError, RemoteServiceError
from ..models import Identity, Role, UserProfile
from .remote import RemoteDataService

logger = logging.getLogger(__name__)

AuthListener = Callable[[Optional[Identity]], Awaitable[None]]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_identity(user) -> Optional[Identity]:
    if user is None:
        return None
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(
        uid=str(user.id),
        email=getattr(user, "email", None),
        display_name=metadata.get("full_name"),
        phone_number=metadata.get("phone_number") or getattr(user, "phone", None) or None,
    )


class SupabaseAuthProvider:
    """Thin adapter over supabase.auth returning Identity objects"""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _call(self, coro):
        try:
            return await coro
        except AuthProviderError:
            raise
        except Exception as e:
            raise AuthProviderError(str(e), code=getattr(e, "code", None)) from e

    async def sign_up(self, email: str, password: str, full_name: str,
                      phone_number: Optional[str] = None) -> Identity:
        response = await self._call(self.client.auth.sign_up({
            "email": email,
            "password": password,
            "options": {"data": {"full_name": full_name, "phone_number": phone_number or ""}},
        }))
        identity = _to_identity(response.user)
        if identity is None:
            raise AuthProviderError("Sign up returned no user")
        return identity

    async def sign_in(self, email: str, password: str) -> Identity:
        response = await self._call(self.client.auth.sign_in_with_password({"email": email, "password": password}))
        identity = _to_identity(response.user)
        if identity is None:
            raise AuthProviderError("Sign in returned no user")
        return identity

    async def sign_out(self) -> None:
        await self._call(self.client.auth.sign_out())

    async def current_identity(self) -> Optional[Identity]:
        response = await self._call(self.client.auth.get_user())
        return _to_identity(response.user) if response else None

    async def reset_password(self, email: str) -> None:
        await self._call(self.client.auth.reset_password_for_email(email))

    async def update_user(self, attributes: Dict[str, Any]) -> Identity:
        response = await self._call(self.client.auth.update_user(attributes))
        return _to_identity(response.user)


class AuthService:
    """User operations built on the auth provider and the users collection"""

    def __init__(self, provider: SupabaseAuthProvider, remote: RemoteDataService,
                 settings: Optional[Settings] = None):
        self.provider = provider
        self.remote = remote
        self.settings = settings or get_settings()
        self._listeners: List[AuthListener] = []

    # ===== IDENTITY-CHANGED NOTIFICATIONS =====

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Register a coroutine called with the new identity (None on sign out)"""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _notify(self, identity: Optional[Identity]) -> None:
        for listener in list(self._listeners):
            await listener(identity)

    # ===== SIGN IN / SIGN OUT =====

    async def register_user(self, email: str, password: str, full_name: str,
                            phone_number: Optional[str] = None) -> Dict[str, Any]:
        """Create an identity and its role record (new users are technicians)"""
        try:
            identity = await self.provider.sign_up(email, password, full_name, phone_number)
            profile = UserProfile(
                uid=identity.uid,
                email=email,
                full_name=full_name,
                phone_number=phone_number or "",
                role=Role.TECHNICIAN,
                created_at=_now_iso(),
            )
            await self.remote.upsert(Collections.USERS, profile.model_dump(mode="json", exclude_none=True),
                                     on_conflict="uid")
            logger.info(f"✅ Registered user {email}")
            await self._notify(identity)
            return {"success": True, "user": identity}
        except (AuthProviderError, RemoteServiceError) as e:
            logger.error(f"❌ Error registering user {email}: {e}")
            return {"success": False, "error": str(e)}

    async def login_user(self, email: str, password: str) -> Dict[str, Any]:
        try:
            identity = await self.provider.sign_in(email, password)
        except AuthProviderError as e:
            logger.error(f"❌ Login failed for {email}: {e}")
            return {"success": False, "error": str(e)}
        logger.info(f"✅ Signed in {email}")
        await self._notify(identity)
        return {"success": True, "user": identity}

    async def logout_user(self) -> Dict[str, Any]:
        try:
            await self.provider.sign_out()
        except AuthProviderError as e:
            logger.error(f"❌ Logout failed: {e}")
            return {"success": False, "error": str(e)}
        await self._notify(None)
        return {"success": True}

    async def reset_password(self, email: str) -> Dict[str, Any]:
        try:
            await self.provider.reset_password(email)
            return {"success": True}
        except AuthProviderError as e:
            logger.error(f"❌ Password reset failed for {email}: {e}")
            return {"success": False, "error": str(e)}

    # ===== PROFILE =====

    async def update_user_profile(self, full_name: str, phone_number: Optional[str] = None) -> Dict[str, Any]:
        try:
            identity = await self.provider.current_identity()
            if identity is None:
                raise AuthProviderError("No user is signed in")
            await self.provider.update_user({"data": {"full_name": full_name, "phone_number": phone_number or ""}})
            await self.remote.upsert(Collections.USERS, {
                "uid": identity.uid,
                "full_name": full_name,
                "phone_number": phone_number or "",
                "updated_at": _now_iso(),
            }, on_conflict="uid")
            return {"success": True}
        except (AuthProviderError, RemoteServiceError) as e:
            logger.error(f"❌ Error updating profile: {e}")
            return {"success": False, "error": str(e)}

    async def update_user_email(self, new_email: str, password: str) -> Dict[str, Any]:
        try:
            identity = await self.provider.current_identity()
            if identity is None or not identity.email:
                raise AuthProviderError("No user is signed in")
            # Re-authenticate before a sensitive change
            await self.provider.sign_in(identity.email, password)
            await self.provider.update_user({"email": new_email})
            await self.remote.upsert(Collections.USERS, {
                "uid": identity.uid,
                "email": new_email,
                "updated_at": _now_iso(),
            }, on_conflict="uid")
            return {"success": True}
        except (AuthProviderError, RemoteServiceError) as e:
            logger.error(f"❌ Error updating email: {e}")
            return {"success": False, "error": str(e)}

    async def update_user_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        try:
            identity = await self.provider.current_identity()
            if identity is None or not identity.email:
                raise AuthProviderError("No user is signed in")
            await self.provider.sign_in(identity.email, current_password)
            await self.provider.update_user({"password": new_password})
            return {"success": True}
        except AuthProviderError as e:
            logger.error(f"❌ Error updating password: {e}")
            return {"success": False, "error": str(e)}

    # ===== ROLE RECORDS =====

    async def get_user_profile(self, uid: str) -> Optional[UserProfile]:
        try:
            rows = await self.remote.select(Collections.USERS, {"uid": uid})
        except RemoteServiceError as e:
            logger.error(f"❌ Error getting user profile {uid}: {e}")
            return None
        return UserProfile.model_validate(rows[0]) if rows else None

    async def get_user_role(self, uid: str) -> Optional[str]:
        """Role of the identity, or None when the record is missing or unreadable"""
        profile = await self.get_user_profile(uid)
        return profile.role if profile else None

    async def list_users(self) -> List[UserProfile]:
        try:
            rows = await self.remote.select(Collections.USERS)
        except RemoteServiceError as e:
            logger.error(f"❌ Error listing users: {e}")
            return []
        return [UserProfile.model_validate(row) for row in rows]

    async def get_all_technicians(self) -> List[UserProfile]:
        try:
            rows = await self.remote.select(Collections.USERS, {"role": Role.TECHNICIAN.value})
        except RemoteServiceError as e:
            logger.error(f"❌ Error getting technicians: {e}")
            return []
        return [UserProfile.model_validate(row) for row in rows]

    async def update_user_role(self, uid: str, new_role: str) -> Dict[str, Any]:
        try:
            role = Role(new_role)
        except ValueError:
            return {"success": False, "error": f"Unknown role: {new_role}"}
        try:
            await self.remote.upsert(Collections.USERS, {
                "uid": uid,
                "role": role.value,
                "updated_at": _now_iso(),
            }, on_conflict="uid")
            logger.info(f"✅ Role of {uid} set to {role.value}")
            return {"success": True}
        except RemoteServiceError as e:
            logger.error(f"❌ Error updating role of {uid}: {e}")
            return {"success": False, "error": str(e)}
