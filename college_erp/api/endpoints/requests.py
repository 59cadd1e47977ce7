# college_erp/api/endpoints/requests.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from college_erp.api.deps import get_current_user, get_db_session, get_request_manager
from college_erp.core.exceptions import (
    ConcurrentUpdateError,
    PermissionDenied,
    RequestError,
    RequestNotFound,
)
from college_erp.core.hierarchy import can_send_request_to
from college_erp.models.enums import ApprovalAction
from college_erp.models.user import User
from college_erp.schemas.request import (
    ApprovalActionRequest,
    CommentCreate,
    CommentDraft,
    CommentRead,
    CompleteRequest,
    Recipient,
    RequestCreate,
    RequestDraft,
    RequestRead,
    RequestStats,
)
from college_erp.services.auth_service import get_user_by_id
from college_erp.services.request_manager import RequestManager

router = APIRouter(prefix="/api/requests", tags=["Requests"])


def to_http_error(exc: RequestError) -> HTTPException:
    if isinstance(exc, PermissionDenied):
        return HTTPException(status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, RequestNotFound):
        return HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConcurrentUpdateError):
        return HTTPException(status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc))


# ===================================================================
# CREATE
# ===================================================================
@router.post("/", response_model=RequestRead, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: RequestCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    manager: RequestManager = Depends(get_request_manager),
):
    recipient = await get_user_by_id(session, data.to_user_id)
    if not recipient:
        raise HTTPException(404, "Recipient not found")

    if not can_send_request_to(current_user.role, recipient.role):
        raise HTTPException(
            status.HTTP_403_FORBIDDEN,
            detail=f"Role '{current_user.role.value}' cannot send requests to '{recipient.role.value}'"
        )

    draft = RequestDraft(
        from_user_id=current_user.id,
        from_user_name=current_user.name,
        from_user_role=current_user.role,
        to_user_id=recipient.id,
        to_user_name=recipient.name,
        to_user_role=recipient.role,
        request_type=data.request_type,
        subject=data.subject,
        description=data.description,
        priority=data.priority,
        department=data.department or current_user.department,
        max_response_time=data.max_response_time,
        tags=data.tags,
    )

    try:
        request_id = await manager.create_request(draft)
        return await manager.get_request(request_id, current_user.id, current_user.role)
    except RequestError as e:
        raise to_http_error(e)


# ===================================================================
# LISTINGS
# ===================================================================
@router.get("/incoming", response_model=List[RequestRead])
async def incoming(
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    return await manager.get_incoming_requests(current_user.id, current_user.role)


@router.get("/outgoing", response_model=List[RequestRead])
async def outgoing(
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    return await manager.get_outgoing_requests(current_user.id)


@router.get("/all", response_model=List[RequestRead])
async def all_requests(
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    try:
        return await manager.get_all_requests(current_user.role)
    except RequestError as e:
        raise to_http_error(e)


@router.get("/pending", response_model=List[RequestRead])
async def pending_for_my_role(
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    return await manager.get_pending_for_role(current_user.role)


@router.get("/stats", response_model=RequestStats)
async def stats(
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    return await manager.get_request_stats(current_user.id, current_user.role)


@router.get("/recipients", response_model=List[Recipient])
async def recipients(
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    return await manager.get_available_recipients(current_user.role)


# ===================================================================
# SINGLE REQUEST
# ===================================================================
@router.get("/{request_id}", response_model=RequestRead)
async def get_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    try:
        return await manager.get_request(request_id, current_user.id, current_user.role)
    except RequestError as e:
        raise to_http_error(e)


# ===================================================================
# APPROVE / REJECT / COMPLETE
# ===================================================================
async def _act(
    request_id: str,
    action: ApprovalAction,
    data: ApprovalActionRequest,
    current_user: User,
    manager: RequestManager,
) -> RequestRead:
    try:
        return await manager.approve_request(
            request_id,
            current_user.id,
            current_user.name,
            current_user.role,
            action,
            data.comment,
        )
    except RequestError as e:
        raise to_http_error(e)


@router.post("/{request_id}/approve", response_model=RequestRead)
async def approve(
    request_id: str,
    data: ApprovalActionRequest = ApprovalActionRequest(),
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    return await _act(request_id, ApprovalAction.Approve, data, current_user, manager)


@router.post("/{request_id}/reject", response_model=RequestRead)
async def reject(
    request_id: str,
    data: ApprovalActionRequest = ApprovalActionRequest(),
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    return await _act(request_id, ApprovalAction.Reject, data, current_user, manager)


@router.post("/{request_id}/complete", response_model=RequestRead)
async def complete(
    request_id: str,
    data: CompleteRequest = CompleteRequest(),
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    try:
        return await manager.complete_request(
            request_id, current_user.id, current_user.name, current_user.role, data.comment
        )
    except RequestError as e:
        raise to_http_error(e)


# ===================================================================
# COMMENTS
# ===================================================================
@router.post("/{request_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def add_comment(
    request_id: str,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    try:
        # Only people who can see the request may comment on it
        await manager.get_request(request_id, current_user.id, current_user.role)
        return await manager.add_comment(
            request_id,
            CommentDraft(
                user_id=current_user.id,
                user_name=current_user.name,
                user_role=current_user.role.value,
                comment=data.comment,
            ),
        )
    except RequestError as e:
        raise to_http_error(e)
