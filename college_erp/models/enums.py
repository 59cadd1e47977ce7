from enum import Enum

class RequestStatus(str, Enum):
    Pending = "pending"
    Approved = "approved"
    Rejected = "rejected"
    Forwarded = "forwarded"
    Completed = "completed"


class RequestPriority(str, Enum):
    Low = "low"
    Medium = "medium"
    High = "high"
    Urgent = "urgent"


class ApprovalAction(str, Enum):
    Approve = "approve"
    Reject = "reject"
