# college_erp/services/request_manager.py

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Union

from loguru import logger
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from college_erp.core.exceptions import (
    ConcurrentUpdateError,
    InvalidTransition,
    PermissionDenied,
    RequestNotFound,
)
from college_erp.core.hierarchy import (
    can_approve_role,
    can_receive_from,
    find_request_flow,
    get_next_approver,
    get_role_config,
    has_audit_visibility,
    role_matches,
)
from college_erp.core.request_types import get_request_type_hierarchy
from college_erp.models.enums import ApprovalAction, RequestStatus
from college_erp.models.request import ServiceRequest
from college_erp.models.request_comment import RequestComment
from college_erp.models.user import User
from college_erp.schemas.request import (
    CommentDraft,
    CommentRead,
    Recipient,
    RequestDraft,
    RequestRead,
    RequestStats,
)

SYSTEM_USER_ID = "system"
SYSTEM_USER_NAME = "System"
SYSTEM_USER_ROLE = "system"


def _system_comment(text: str) -> CommentDraft:
    return CommentDraft(
        user_id=SYSTEM_USER_ID,
        user_name=SYSTEM_USER_NAME,
        user_role=SYSTEM_USER_ROLE,
        comment=text,
        is_internal=True,
    )


def _role_value(role) -> str:
    return role.value if hasattr(role, "value") else str(role)


def is_overdue(request: Union[ServiceRequest, RequestRead], now: datetime) -> bool:
    """True when more than ``max_response_time`` hours passed since creation."""
    if request.max_response_time is None:
        return False
    elapsed_hours = (now - request.created_at).total_seconds() / 3600
    return elapsed_hours > request.max_response_time


def can_take_over(role, from_role) -> bool:
    """A role may hold a request only if it both receives from and approves the sender."""
    return can_receive_from(role, from_role) and can_approve_role(role, from_role)


class RequestManager:
    """
    Owns every mutation of stored requests.

    Built once at startup from a session factory and injected into the
    API layer. Each public call runs in its own session; writes to a request
    are compare-and-swap updates on its ``version`` column, so a concurrent
    writer surfaces as ``ConcurrentUpdateError`` instead of a lost update.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Callable[[], datetime] = datetime.utcnow,
        default_max_response_time: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._default_max_response_time = default_max_response_time

    # ------------------------------------------------------------
    # Session / store helpers
    # ------------------------------------------------------------
    @asynccontextmanager
    async def _session(self):
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _fetch(self, session: AsyncSession, request_id: str) -> ServiceRequest:
        result = await session.execute(
            select(ServiceRequest)
            .where(ServiceRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if not row:
            raise RequestNotFound(request_id)
        return row

    async def _write(self, session: AsyncSession, row: ServiceRequest, **values) -> None:
        """Compare-and-swap update of ``row`` against its loaded version."""
        expected = row.version
        values.setdefault("updated_at", self._clock())
        stmt = (
            update(ServiceRequest)
            .where(ServiceRequest.id == row.id, ServiceRequest.version == expected)
            .values(version=expected + 1, **values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(f"Version conflict on request {row.id} (expected v{expected})")
            raise ConcurrentUpdateError(row.id, expected)
        await session.refresh(row)

    async def _append_comment(
        self, session: AsyncSession, request_id: str, draft: CommentDraft
    ) -> RequestComment:
        result = await session.execute(
            select(func.max(RequestComment.sequence)).where(RequestComment.request_id == request_id)
        )
        last = result.scalar_one_or_none() or 0

        comment = RequestComment(
            request_id=request_id,
            sequence=last + 1,
            user_id=draft.user_id,
            user_name=draft.user_name,
            user_role=draft.user_role,
            comment=draft.comment,
            is_internal=draft.is_internal,
            timestamp=self._clock(),
        )
        session.add(comment)
        await session.flush()
        return comment

    async def _find_user_with_role(self, session: AsyncSession, role) -> Optional[User]:
        # Lowest id wins when several users share the role
        result = await session.execute(
            select(User).where(User.role == role).order_by(User.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def _to_read(self, session: AsyncSession, rows: Iterable[ServiceRequest]) -> List[RequestRead]:
        rows = list(rows)
        if not rows:
            return []

        result = await session.execute(
            select(RequestComment)
            .where(RequestComment.request_id.in_([r.id for r in rows]))
            .order_by(RequestComment.request_id, RequestComment.sequence)
        )
        threads: Dict[str, List[CommentRead]] = {}
        for comment in result.scalars().all():
            threads.setdefault(comment.request_id, []).append(CommentRead.model_validate(comment))

        reads = []
        for row in rows:
            read = RequestRead.model_validate(row)
            read.comments = threads.get(row.id, [])
            reads.append(read)
        return reads

    @staticmethod
    def _newest_first(rows: Iterable[ServiceRequest]) -> List[ServiceRequest]:
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    # ------------------------------------------------------------
    # Auto-forward
    # ------------------------------------------------------------
    async def _auto_forward(self, session: AsyncSession, row: ServiceRequest) -> bool:
        flow = find_request_flow(row.from_user_role, row.to_user_role)
        if not flow or not flow.auto_forward:
            return False

        chain = get_request_type_hierarchy(row.request_type)
        if chain is None or not chain.auto_forward:
            return False

        next_role = get_next_approver(row.to_user_role, row.request_type)
        if not next_role:
            return False
        if not can_take_over(next_role, row.from_user_role):
            logger.info(
                f"Auto-forward of {row.id} skipped: '{next_role.value}' cannot act on requests "
                f"from '{row.from_user_role}'"
            )
            return False

        target = await self._find_user_with_role(session, next_role)
        if not target:
            logger.warning(
                f"Auto-forward of {row.id} skipped: no user holds role '{next_role.value}'"
            )
            return False

        await self._write(
            session,
            row,
            to_user_id=target.id,
            to_user_name=target.name,
            to_user_role=target.role.value,
            status=RequestStatus.Forwarded,
            auto_forwarded=True,
            escalation_level=row.escalation_level + 1,
        )
        await self._append_comment(
            session,
            row.id,
            _system_comment(f"Auto-forwarded to {target.name} ({target.role.value})"),
        )
        logger.info(f"Request {row.id} auto-forwarded to {target.role.value} ({target.id})")
        return True

    # ------------------------------------------------------------
    # Create
    # ------------------------------------------------------------
    async def create_request(self, draft: RequestDraft) -> str:
        """
        Store a new pending request and run auto-forward once.

        The caller is expected to have checked ``can_send_request_to``.
        Returns the new request id; by the time the caller reads the record
        back it may already be ``forwarded``.
        """
        now = self._clock()
        max_response_time = (
            draft.max_response_time
            if draft.max_response_time is not None
            else self._default_max_response_time
        )

        async with self._session() as session:
            row = ServiceRequest(
                from_user_id=draft.from_user_id,
                from_user_name=draft.from_user_name,
                from_user_role=draft.from_user_role.value,
                to_user_id=draft.to_user_id,
                to_user_name=draft.to_user_name,
                to_user_role=draft.to_user_role.value,
                request_type=draft.request_type,
                subject=draft.subject,
                description=draft.description,
                status=RequestStatus.Pending,
                priority=draft.priority,
                created_at=now,
                updated_at=now,
                auto_forwarded=False,
                escalation_level=0,
                max_response_time=max_response_time,
                department=draft.department,
                tags=list(draft.tags),
                attachments=list(draft.attachments),
                version=1,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            logger.info(
                f"Request {row.id} created: {row.request_type} "
                f"{row.from_user_role} -> {row.to_user_role}"
            )

            await self._auto_forward(session, row)
            return row.id

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------
    async def get_request(self, request_id: str, viewer_id: str, viewer_role) -> RequestRead:
        async with self._session() as session:
            row = await self._fetch(session, request_id)
            involved = viewer_id in (row.from_user_id, row.to_user_id)
            if not involved and not has_audit_visibility(viewer_role):
                raise PermissionDenied("Not allowed to view this request")
            return (await self._to_read(session, [row]))[0]

    async def get_incoming_requests(self, user_id: str, user_role) -> List[RequestRead]:
        async with self._session() as session:
            result = await session.execute(
                select(ServiceRequest).where(ServiceRequest.to_user_id == user_id)
            )
            # Addressed to the user but outside the receive table: silently dropped
            rows = [
                r for r in result.scalars().all()
                if can_receive_from(user_role, r.from_user_role)
            ]
            return await self._to_read(session, self._newest_first(rows))

    async def get_outgoing_requests(self, user_id: str) -> List[RequestRead]:
        async with self._session() as session:
            result = await session.execute(
                select(ServiceRequest).where(ServiceRequest.from_user_id == user_id)
            )
            return await self._to_read(session, self._newest_first(result.scalars().all()))

    async def get_all_requests(self, user_role) -> List[RequestRead]:
        if not has_audit_visibility(user_role):
            logger.warning(f"Role '{_role_value(user_role)}' denied access to all requests")
            raise PermissionDenied("Insufficient permissions")

        async with self._session() as session:
            result = await session.execute(select(ServiceRequest))
            return await self._to_read(session, self._newest_first(result.scalars().all()))

    async def get_pending_for_role(self, role) -> List[RequestRead]:
        """Open requests currently addressed to ``role``, oldest first."""
        async with self._session() as session:
            result = await session.execute(
                select(ServiceRequest)
                .where(ServiceRequest.to_user_role == _role_value(role))
                .where(ServiceRequest.status.in_([RequestStatus.Pending, RequestStatus.Forwarded]))
                .order_by(ServiceRequest.created_at.asc())
            )
            return await self._to_read(session, result.scalars().all())

    # ------------------------------------------------------------
    # Approve / reject / complete
    # ------------------------------------------------------------
    async def approve_request(
        self,
        request_id: str,
        approver_id: str,
        approver_name: str,
        approver_role,
        action: Union[ApprovalAction, str],
        comment: Optional[str] = None,
    ) -> RequestRead:
        action = ApprovalAction(action)

        async with self._session() as session:
            row = await self._fetch(session, request_id)

            if not can_approve_role(approver_role, row.from_user_role):
                logger.warning(
                    f"{_role_value(approver_role)} ({approver_id}) may not act on "
                    f"requests from {row.from_user_role} ({request_id})"
                )
                raise PermissionDenied("Insufficient permissions to approve this request")

            if row.status in (RequestStatus.Rejected, RequestStatus.Completed):
                raise InvalidTransition(f"Request is already {row.status.value}")

            approved = action == ApprovalAction.Approve
            now = self._clock()
            await self._write(
                session,
                row,
                status=RequestStatus.Approved if approved else RequestStatus.Rejected,
                approved_at=now,
                approved_by=approver_id,
                approved_by_name=approver_name,
                updated_at=now,
            )

            if comment:
                await self._append_comment(
                    session,
                    row.id,
                    CommentDraft(
                        user_id=approver_id,
                        user_name=approver_name,
                        user_role=_role_value(approver_role),
                        comment=f"{'Approved' if approved else 'Rejected'}: {comment}",
                        is_internal=False,
                    ),
                )

            logger.success(f"Request {row.id} {row.status.value} by {approver_name} ({approver_id})")

            if approved:
                await self._auto_forward(session, row)

            return (await self._to_read(session, [row]))[0]

    async def complete_request(
        self,
        request_id: str,
        actor_id: str,
        actor_name: str,
        actor_role,
        comment: Optional[str] = None,
    ) -> RequestRead:
        async with self._session() as session:
            row = await self._fetch(session, request_id)

            if row.to_user_id != actor_id and not has_audit_visibility(actor_role):
                raise PermissionDenied("Only the current recipient can complete this request")
            if row.status != RequestStatus.Approved:
                raise InvalidTransition(
                    f"Only approved requests can be completed (status: {row.status.value})"
                )

            await self._write(session, row, status=RequestStatus.Completed)
            if comment:
                await self._append_comment(
                    session,
                    row.id,
                    CommentDraft(
                        user_id=actor_id,
                        user_name=actor_name,
                        user_role=_role_value(actor_role),
                        comment=f"Completed: {comment}",
                    ),
                )
            logger.success(f"Request {row.id} completed by {actor_name} ({actor_id})")
            return (await self._to_read(session, [row]))[0]

    # ------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------
    async def add_comment(self, request_id: str, comment: CommentDraft) -> CommentRead:
        async with self._session() as session:
            row = await self._fetch(session, request_id)
            await self._write(session, row)
            stored = await self._append_comment(session, row.id, comment)
            return CommentRead.model_validate(stored)

    # ------------------------------------------------------------
    # Statistics / recipients
    # ------------------------------------------------------------
    async def get_request_stats(self, user_id: str, user_role) -> RequestStats:
        if has_audit_visibility(user_role):
            requests = await self.get_all_requests(user_role)
        else:
            incoming = await self.get_incoming_requests(user_id, user_role)
            outgoing = await self.get_outgoing_requests(user_id)
            # A request can be both incoming and outgoing; count it once
            requests = list({r.id: r for r in incoming + outgoing}.values())

        now = self._clock()
        stats = RequestStats(total=len(requests))
        for r in requests:
            setattr(stats, r.status.value, getattr(stats, r.status.value) + 1)
            if is_overdue(r, now):
                stats.overdue += 1
        return stats

    async def get_available_recipients(self, user_role) -> List[Recipient]:
        config = get_role_config(user_role)
        if not config:
            return []

        async with self._session() as session:
            result = await session.execute(select(User).order_by(User.name))
            return [
                Recipient(uid=u.id, name=u.name, role=u.role, department=u.department)
                for u in result.scalars().all()
                if role_matches(config.can_send_requests_to, u.role)
            ]

    # ------------------------------------------------------------
    # Escalation sweep
    # ------------------------------------------------------------
    async def escalate_overdue_requests(self) -> int:
        """
        Escalate pending requests past their response window.

        The level is bumped and a system note added; when a user holds the
        next role in the chain the request is reassigned to them. Returns the
        number of requests escalated.
        """
        now = self._clock()
        escalated = 0

        async with self._session() as session:
            result = await session.execute(
                select(ServiceRequest).where(ServiceRequest.status == RequestStatus.Pending)
            )
            overdue_ids = [r.id for r in result.scalars().all() if is_overdue(r, now)]

            for request_id in overdue_ids:
                # Re-read: an earlier commit or rollback in this loop expires loaded rows
                row = await self._fetch(session, request_id)
                if row.status != RequestStatus.Pending:
                    continue

                next_role = get_next_approver(row.to_user_role, row.request_type)
                if not next_role:
                    continue

                # Only hand over to a role that can see and approve the request
                target = None
                if can_take_over(next_role, row.from_user_role):
                    target = await self._find_user_with_role(session, next_role)
                new_level = row.escalation_level + 1
                values = {"escalation_level": new_level, "updated_at": now}
                note = "Request escalated due to overdue status"
                if target:
                    values.update(
                        to_user_id=target.id,
                        to_user_name=target.name,
                        to_user_role=target.role.value,
                        status=RequestStatus.Forwarded,
                    )
                    note += f" to {target.name} ({target.role.value})"

                try:
                    await self._write(session, row, **values)
                    await self._append_comment(session, row.id, _system_comment(note))
                    await session.commit()
                except ConcurrentUpdateError:
                    # Someone acted on it since the sweep read it; leave it to them
                    await session.rollback()
                    continue

                escalated += 1
                logger.info(f"Request {request_id} escalated to level {new_level}")

        if escalated:
            logger.success(f"Escalated {escalated} overdue request(s)")
        return escalated
