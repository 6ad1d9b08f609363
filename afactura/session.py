"""
Session Context

DESIGN DECISION: There is no ambient "current user/profile" state.
`SessionManager.login` returns an explicit, immutable SessionContext that
callers pass into every operation; operations that change the profile
return a new context. The profile is loaded from the store when the
session starts and saved whenever it changes.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from afactura.audit import AuditTrailRecorder
from afactura.constants import DEFAULT_COMPANY, FINAL_CONSUMER
from afactura.models.audit import AuditAction
from afactura.models.invoice import CompanyProfile
from afactura.models.settings import (
    ProfileSetting,
    SettingKey,
    parse_setting,
    setting_to_record,
)
from afactura.services.storage import Collection, RecordStoreInterface
from afactura.utils.helper import utc_now_iso


class NotAuthenticatedError(Exception):
    """Operation requires a logged-in session."""
    pass


class SessionContext(BaseModel):
    """Who is acting, and with which company profile."""
    model_config = ConfigDict(frozen=True)

    user: str
    authenticated: bool = False
    profile: CompanyProfile = DEFAULT_COMPANY
    started_at: Optional[str] = None


def require_authenticated(ctx: SessionContext) -> None:
    if not ctx.authenticated:
        raise NotAuthenticatedError("Please log in first")


async def load_profile(store: RecordStoreInterface) -> Optional[CompanyProfile]:
    record = await store.get(Collection.SETTINGS, SettingKey.PROFILE.value)
    if record is None:
        return None
    setting = parse_setting(record)
    return setting.value if isinstance(setting, ProfileSetting) else None


async def save_profile(store: RecordStoreInterface, profile: CompanyProfile) -> None:
    await store.put(Collection.SETTINGS, setting_to_record(ProfileSetting(value=profile)))


class SessionManager:
    """Starts and ends sessions; owns profile load/save."""

    def __init__(
        self,
        store: RecordStoreInterface,
        audit: AuditTrailRecorder,
        default_user: str = "Admin",
    ):
        self._store = store
        self._audit = audit
        self._default_user = default_user

    async def _seed_defaults(self) -> CompanyProfile:
        """First run: default profile and the final-consumer client."""
        profile = await load_profile(self._store)
        if profile is None:
            profile = DEFAULT_COMPANY
            await save_profile(self._store, profile)

        if not await self._store.list_all(Collection.CLIENTS):
            await self._store.bulk_add(
                Collection.CLIENTS, [FINAL_CONSUMER.model_dump(mode="json")],
            )
        return profile

    async def login(self, user: Optional[str] = None) -> SessionContext:
        user = user or self._default_user
        profile = await self._seed_defaults()
        self._audit.dispatch(AuditAction.LOGIN, "User logged in successfully", user)
        return SessionContext(
            user=user,
            authenticated=True,
            profile=profile,
            started_at=utc_now_iso(),
        )

    async def logout(self, ctx: SessionContext) -> SessionContext:
        if ctx.authenticated:
            self._audit.dispatch(AuditAction.LOGOUT, "User logged out", ctx.user)
        return ctx.model_copy(update={"authenticated": False})

    async def update_profile(
        self,
        ctx: SessionContext,
        profile: CompanyProfile,
    ) -> SessionContext:
        """Persist a new company profile and return the updated context."""
        require_authenticated(ctx)
        await save_profile(self._store, profile)
        self._audit.dispatch(AuditAction.SETTINGS_UPDATE, "Company profile updated", ctx.user)
        return ctx.model_copy(update={"profile": profile})
