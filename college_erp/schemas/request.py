from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from college_erp.core.request_types import is_known_request_type
from college_erp.models.enums import RequestPriority, RequestStatus
from college_erp.models.user import UserRole


def _check_request_type(value: str) -> str:
    value = value.strip().lower()
    if not is_known_request_type(value):
        raise ValueError(f"Unknown request type '{value}'")
    return value


# -------------------------------------------------------------------
# CREATE (HTTP body: sender comes from the token)
# -------------------------------------------------------------------
class RequestCreate(BaseModel):
    to_user_id: str
    request_type: str
    subject: str = Field(min_length=1)
    description: str = Field(min_length=1)
    priority: RequestPriority = RequestPriority.Medium
    department: Optional[str] = None
    max_response_time: Optional[int] = Field(default=None, gt=0)
    tags: List[str] = []

    @field_validator("request_type")
    @classmethod
    def validate_request_type(cls, value: str) -> str:
        return _check_request_type(value)


# -------------------------------------------------------------------
# DRAFT (service input: full sender + recipient identity)
# -------------------------------------------------------------------
class RequestDraft(BaseModel):
    from_user_id: str
    from_user_name: str
    from_user_role: UserRole
    to_user_id: Optional[str] = None
    to_user_name: Optional[str] = None
    to_user_role: UserRole
    request_type: str
    subject: str
    description: str
    priority: RequestPriority = RequestPriority.Medium
    department: Optional[str] = None
    max_response_time: Optional[int] = Field(default=None, ge=0)
    tags: List[str] = []
    attachments: List[str] = []

    @field_validator("request_type")
    @classmethod
    def validate_request_type(cls, value: str) -> str:
        return _check_request_type(value)


# -------------------------------------------------------------------
# COMMENTS
# -------------------------------------------------------------------
class CommentCreate(BaseModel):
    comment: str = Field(min_length=1)


class CommentDraft(BaseModel):
    user_id: str
    user_name: str
    user_role: str
    comment: str
    is_internal: bool = False


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sequence: int
    user_id: str
    user_name: str
    user_role: str
    comment: str
    timestamp: datetime
    is_internal: bool


# -------------------------------------------------------------------
# READ
# -------------------------------------------------------------------
class RequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    from_user_id: str
    from_user_name: str
    from_user_role: str
    to_user_id: Optional[str] = None
    to_user_name: Optional[str] = None
    to_user_role: str
    request_type: str
    subject: str
    description: str
    status: RequestStatus
    priority: RequestPriority
    created_at: datetime
    updated_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_by_name: Optional[str] = None
    auto_forwarded: bool
    escalation_level: int
    max_response_time: Optional[int] = None
    department: Optional[str] = None
    tags: List[str] = []
    attachments: List[str] = []
    version: int
    comments: List[CommentRead] = []


# -------------------------------------------------------------------
# ACTIONS
# -------------------------------------------------------------------
class ApprovalActionRequest(BaseModel):
    comment: Optional[str] = None


class CompleteRequest(BaseModel):
    comment: Optional[str] = None


# -------------------------------------------------------------------
# AGGREGATES
# -------------------------------------------------------------------
class RequestStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    forwarded: int = 0
    completed: int = 0
    overdue: int = 0


class Recipient(BaseModel):
    uid: str
    name: str
    role: UserRole
    department: Optional[str] = None
