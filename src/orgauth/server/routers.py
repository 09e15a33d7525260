from fastapi import APIRouter

from orgauth.authentication.auth_router import router as auth_router
from orgauth.invitations.invitation_router import router as invitation_router
from orgauth.organizations.organization_router import router as organization_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["authentication"])
router.include_router(organization_router, tags=["organizations"])
router.include_router(invitation_router, tags=["invitations"])
