"""Domain schemas. Request/response and validation."""

from gitguard.domain.schemas.access_request import (
    AccessRequestCreate,
    AccessRequestPage,
    AccessRequestResponse,
    ApprovalResponse,
    ApproveBody,
    Pagination,
    RejectBody,
)

__all__ = [
    "AccessRequestCreate",
    "AccessRequestPage",
    "AccessRequestResponse",
    "ApprovalResponse",
    "ApproveBody",
    "Pagination",
    "RejectBody",
]
