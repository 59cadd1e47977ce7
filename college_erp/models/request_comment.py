# college_erp/models/request_comment.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from datetime import datetime

from college_erp.models.user import new_uid


class RequestComment(SQLModel, table=True):
    __tablename__ = "request_comments"

    id: str = Field(
        default_factory=new_uid,
        sa_column=Column(String(32), primary_key=True)
    )

    request_id: str = Field(
        sa_column=Column(String(32), ForeignKey("requests.id"), nullable=False, index=True)
    )

    # position in the request's thread, 1-based
    sequence: int = Field(sa_column=Column(Integer, nullable=False))

    user_id: str = Field(sa_column=Column(String(32), nullable=False))
    user_name: str = Field(sa_column=Column(String, nullable=False))
    user_role: str = Field(sa_column=Column(String(40), nullable=False))

    comment: str = Field(sa_column=Column(Text, nullable=False))

    # System-generated forwarding/escalation notes
    is_internal: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False)
    )

    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )
