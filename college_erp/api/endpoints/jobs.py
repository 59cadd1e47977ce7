from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from college_erp.api.deps import get_request_manager
from college_erp.core.config import settings
from college_erp.services.request_manager import RequestManager

router = APIRouter(prefix="/api/jobs", tags=["Background Jobs"])


@router.post("/escalate-overdue")
async def escalate_overdue(
    secret_key: str,
    manager: RequestManager = Depends(get_request_manager),
):
    """
    CRON JOB ENDPOINT.
    Escalates pending requests that exceeded their response window.
    """
    if not settings.JOB_SECRET or secret_key != settings.JOB_SECRET:
        logger.warning("Unauthorized access attempt to escalation job.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing Job Secret Key."
        )

    escalated = await manager.escalate_overdue_requests()

    if not escalated:
        return {"status": "skipped", "message": "No overdue requests found.", "escalated": 0}

    return {"status": "success", "escalated": escalated}
