from src.crewgate.schemas.audit import AuditLogListResponse, AuditLogRead
from src.crewgate.schemas.invitation import (
    InvitationAcceptRequest,
    InvitationAcceptResponse,
    InvitationCreateRequest,
    InvitationListItem,
    InvitationListResponse,
    InvitationPreviewResponse,
    InvitationRead,
    InvitationResponse,
)
from src.crewgate.schemas.membership import (
    MemberListResponse,
    MemberRead,
    RoleChangeRequest,
    StatusChangeRequest,
)
from src.crewgate.schemas.pagination import PaginatedResponse, decode_cursor, encode_cursor

__all__ = [
    # Audit
    "AuditLogListResponse",
    "AuditLogRead",
    # Invitations
    "InvitationAcceptRequest",
    "InvitationAcceptResponse",
    "InvitationCreateRequest",
    "InvitationListItem",
    "InvitationListResponse",
    "InvitationPreviewResponse",
    "InvitationRead",
    "InvitationResponse",
    # Members
    "MemberListResponse",
    "MemberRead",
    "RoleChangeRequest",
    "StatusChangeRequest",
    # Pagination
    "PaginatedResponse",
    "decode_cursor",
    "encode_cursor",
]
