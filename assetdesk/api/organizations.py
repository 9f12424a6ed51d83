"""
Organization API endpoints.

WHAT: Create and list organizations, edit settings, manage members and
invitations.

WHY: The organization row is the tenant root and the membership source
for every other route. Mutations here are FULL_ACCESS only; a member can
never change or remove their own membership.

HOW: FastAPI router; membership resolved through OrgContext, business
rules in OrganizationService.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from assetdesk.core.deps import OrgContext, get_current_user_id, get_org_context
from assetdesk.db.session import get_db
from assetdesk.models.invitation import Invitation
from assetdesk.models.organization import Organization
from assetdesk.schemas.organization import (
    InvitationCreate,
    InvitationResponse,
    MemberRoleUpdate,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
)
from assetdesk.services.organization_service import OrganizationService

router = APIRouter(prefix="/organizations", tags=["organizations"])
invitations_router = APIRouter(prefix="/invitations", tags=["invitations"])


def _org_to_response(org: Organization) -> OrganizationResponse:
    return OrganizationResponse(**org.to_dict())


def _invitation_to_response(invitation: Invitation) -> InvitationResponse:
    return InvitationResponse(
        token=invitation.token,
        organization_id=invitation.organization_id,
        email=invitation.email,
        role=invitation.role,
        expires_at=invitation.expires_at,
    )


@router.post(
    "",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create organization",
    description="Create an organization; the caller becomes its first FULL_ACCESS member",
)
async def create_organization(
    data: OrganizationCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    org = await OrganizationService(db).create_organization(data.name, user_id, data.currency)
    return _org_to_response(org)


@router.get(
    "",
    response_model=List[OrganizationResponse],
    summary="List my organizations",
)
async def list_organizations(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[OrganizationResponse]:
    orgs = await OrganizationService(db).list_for_user(user_id)
    return [_org_to_response(org) for org in orgs]


@router.get(
    "/{org_id}",
    response_model=OrganizationResponse,
    summary="Get organization",
)
async def get_organization(ctx: OrgContext = Depends(get_org_context)) -> OrganizationResponse:
    return _org_to_response(ctx.organization)


@router.patch(
    "/{org_id}",
    response_model=OrganizationResponse,
    summary="Update organization",
    description="Rename and/or merge settings (FULL_ACCESS only)",
)
async def update_organization(
    data: OrganizationUpdate,
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    org = await OrganizationService(db).update_organization(
        ctx.organization_id,
        ctx.role,
        name=data.name,
        settings_update=data.settings,
    )
    return _org_to_response(org)


@router.put(
    "/{org_id}/members/{user_id}",
    response_model=OrganizationResponse,
    summary="Change member role",
)
async def update_member_role(
    user_id: str,
    data: MemberRoleUpdate,
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    org = await OrganizationService(db).update_member_role(
        ctx.organization_id, ctx.user_id, ctx.role, user_id, data.role
    )
    return _org_to_response(org)


@router.delete(
    "/{org_id}/members/{user_id}",
    response_model=OrganizationResponse,
    summary="Remove member",
)
async def remove_member(
    user_id: str,
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    org = await OrganizationService(db).remove_member(
        ctx.organization_id, ctx.user_id, ctx.role, user_id
    )
    return _org_to_response(org)


@router.post(
    "/{org_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a member",
)
async def create_invitation(
    data: InvitationCreate,
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    invitation = await OrganizationService(db).create_invitation(
        ctx.organization_id, ctx.user_id, ctx.role, data.email, data.role
    )
    return _invitation_to_response(invitation)


@router.get(
    "/{org_id}/invitations",
    response_model=List[InvitationResponse],
    summary="List pending invitations",
)
async def list_invitations(
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
) -> List[InvitationResponse]:
    invitations = await OrganizationService(db).list_invitations(ctx.organization_id, ctx.role)
    return [_invitation_to_response(inv) for inv in invitations]


@invitations_router.post(
    "/{token}/accept",
    response_model=OrganizationResponse,
    summary="Accept invitation",
)
async def accept_invitation(
    token: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    org = await OrganizationService(db).accept_invitation(token, user_id)
    return _org_to_response(org)
