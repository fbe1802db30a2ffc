from fastapi import APIRouter

from src.crewgate.api.v1 import audit, invitations, members

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(invitations.router)
api_router.include_router(invitations.public_router)
api_router.include_router(members.router)
api_router.include_router(audit.router)
