"""
FastAPI dependencies for authentication, organization scoping and services.

WHY: Dependencies provide reusable authentication and authorization logic
that can be injected into route handlers, following the DRY principle
and ensuring consistent security across the API.

Every ``/organizations/{org_id}/...`` route resolves an OrgContext: the
membership check runs exactly once per request, and the resulting
role-guarded store is the only way handlers reach tenant data.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.auth import verify_token
from assetdesk.core.config import settings
from assetdesk.core.exceptions import (
    AuthenticationError,
    OrganizationNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
)
from assetdesk.dao.org_store import OrgScopedStore
from assetdesk.dao.organization import OrganizationDAO
from assetdesk.db.session import get_db
from assetdesk.models.organization import Organization, Role
from assetdesk.services.asset_service import AssetService
from assetdesk.services.authorization import GuardedOrgStore, ensure_role
from assetdesk.services.hierarchy_service import CategoryService, SpaceService
from assetdesk.services.membership import MembershipService
from assetdesk.services.share_service import ShareService
from assetdesk.services.storage_service import AttachmentStorage
from assetdesk.services.suggestion_service import SuggestionService
from assetdesk.services.task_service import TaskService

# auto_error=False so a missing header is a 401 from our handler, not a 403
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Authenticated user id from the bearer token's ``sub`` claim.

    Raises:
        AuthenticationError: Missing, expired or invalid token
    """
    if credentials is None:
        raise AuthenticationError(message="Missing bearer token")

    try:
        payload = verify_token(credentials.credentials)
    except (TokenExpiredError, TokenInvalidError) as e:
        raise AuthenticationError(message=str(e), status_code=e.status_code)

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError(message="Invalid token: missing subject")
    return str(user_id)


@dataclass(frozen=True)
class OrgContext:
    """Resolved tenant scope for one request."""

    organization: Organization
    user_id: str
    role: Role
    store: GuardedOrgStore

    @property
    def organization_id(self) -> str:
        return self.organization.id


async def get_org_context(
    org_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OrgContext:
    """
    Run the membership check and build the guarded store.

    Raises:
        AuthorizationDenied: User is not a member (also for unknown orgs)
    """
    role = await MembershipService(db).authorize(user_id, org_id)
    organization = await OrganizationDAO(db).get_by_id(org_id)
    if organization is None:
        # Deleted between the two reads
        raise OrganizationNotFoundError(organization_id=org_id)

    store = GuardedOrgStore(OrgScopedStore(db, org_id, user_id), role)
    return OrgContext(organization=organization, user_id=user_id, role=role, store=store)


async def require_full_access(ctx: OrgContext = Depends(get_org_context)) -> OrgContext:
    """
    OrgContext for FULL_ACCESS members only.

    Raises:
        InsufficientPermissionsError: Member has LIMITED_ACCESS
    """
    ensure_role(ctx.role, Role.FULL_ACCESS)
    return ctx


def get_storage(request: Request) -> AttachmentStorage:
    """Attachment storage constructed by the application factory."""
    return request.app.state.storage


def get_ai_client(request: Request) -> Optional[AsyncOpenAI]:
    """OpenAI client constructed by the application factory, None when disabled."""
    return getattr(request.app.state, "ai_client", None)


def get_share_service() -> ShareService:
    return ShareService(settings.APP_URL)


def get_asset_service(
    ctx: OrgContext = Depends(get_org_context),
    storage: AttachmentStorage = Depends(get_storage),
) -> AssetService:
    return AssetService(ctx.store, storage)


def get_category_service(ctx: OrgContext = Depends(get_org_context)) -> CategoryService:
    return CategoryService(ctx.store)


def get_space_service(ctx: OrgContext = Depends(get_org_context)) -> SpaceService:
    return SpaceService(ctx.store)


def get_task_service(ctx: OrgContext = Depends(get_org_context)) -> TaskService:
    return TaskService(ctx.store, default_currency=(ctx.organization.settings or {}).get("currency"))


def get_suggestion_service(
    ctx: OrgContext = Depends(get_org_context),
    client: Optional[AsyncOpenAI] = Depends(get_ai_client),
) -> SuggestionService:
    return SuggestionService(
        ctx.store,
        client,
        quota_limit=(ctx.organization.settings or {}).get("quotaLimit"),
    )
