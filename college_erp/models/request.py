# college_erp/models/request.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, DateTime, Integer, String, Text, JSON
from sqlalchemy import Enum as SAEnum
from datetime import datetime
from typing import List, Optional

from college_erp.models.enums import RequestStatus, RequestPriority
from college_erp.models.user import new_uid


def _values(enum_cls):
    return [m.value for m in enum_cls]


class ServiceRequest(SQLModel, table=True):
    __tablename__ = "requests"

    id: str = Field(
        default_factory=new_uid,
        sa_column=Column(String(32), primary_key=True)
    )

    # Sender snapshot
    from_user_id: str = Field(sa_column=Column(String(32), nullable=False, index=True))
    from_user_name: str = Field(sa_column=Column(String, nullable=False))
    from_user_role: str = Field(sa_column=Column(String(40), nullable=False))

    # Current recipient (rewritten on forward)
    to_user_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(32), nullable=True, index=True)
    )
    to_user_name: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))
    to_user_role: str = Field(sa_column=Column(String(40), nullable=False, index=True))

    request_type: str = Field(sa_column=Column(String(40), nullable=False))
    subject: str = Field(sa_column=Column(String, nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))

    status: RequestStatus = Field(
        default=RequestStatus.Pending,
        sa_column=Column(
            SAEnum(RequestStatus, name="request_status", values_callable=_values),
            nullable=False,
            index=True,
        )
    )

    priority: RequestPriority = Field(
        default=RequestPriority.Medium,
        sa_column=Column(
            SAEnum(RequestPriority, name="request_priority", values_callable=_values),
            nullable=False,
        )
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )

    approved_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    approved_by: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))
    approved_by_name: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))

    auto_forwarded: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False)
    )
    escalation_level: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0)
    )

    # Hours the current recipient has before the request counts as overdue
    max_response_time: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True))
    department: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    attachments: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Bumped on every write; writes compare-and-swap against it
    version: int = Field(
        default=1,
        sa_column=Column(Integer, nullable=False, default=1)
    )
