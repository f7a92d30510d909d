"""Registration allocator.

Every state change runs in its own transaction ("atomic unit") against a fresh
session. The event's capacity row is read ``FOR UPDATE`` and every write bumps
its ``version`` with a compare-and-set, so registrations, cancellations and
promotions for the same event are serialized, while unrelated events never
contend. A lost race rolls back and the whole operation is retried from the
eligibility check.
"""
import asyncio
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Optional, TypeVar
from uuid import UUID

from huskytrack.registration.entities.registration import RegistrationEntity
from huskytrack.registration.errors import (
    ConflictError,
    EventNotEnded,
    EventNotFound,
    NotOrganizer,
    NotOwner,
    RegistrationNotFound,
    TemporaryConflict,
)
from huskytrack.registration.log import AuditLogType, audit_log
from huskytrack.registration.models.config import AllocatorConfig
from huskytrack.registration.models.event import CapacitySnapshot
from huskytrack.registration.models.registration import (
    CancellationResult,
    EligibilityVerdict,
    ReconcileResult,
    Registration,
    RegistrationResult,
    RegistrationStats,
    RegistrationStatus,
)
from huskytrack.registration.notifications.models import NotificationKind
from huskytrack.registration.notifications.service import NotificationEmitter
from huskytrack.registration.serialization import get_converter
from huskytrack.registration.services.capacity import CapacityOracle
from huskytrack.registration.services.eligibility import (
    EligibilityChecker,
    evaluate_eligibility,
    raise_for_verdict,
)
from huskytrack.registration.services.registration import (
    RegistrationService,
    build_stats,
)
from huskytrack.registration.services.waitlist import WaitlistSequencer
from loguru import logger
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

T = TypeVar("T")

TRANSIENT_SQLSTATES = frozenset({"40001", "40P01"})
"""Serialization failure and deadlock."""


def is_transient_error(exc: DBAPIError) -> bool:
    """Whether a database error is worth retrying."""
    if isinstance(exc, (IntegrityError, OperationalError)):
        return True

    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in TRANSIENT_SQLSTATES


class RegistrationAllocator:
    """Registers, waitlists, cancels and promotes participants."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        notifier: NotificationEmitter,
        config: AllocatorConfig = AllocatorConfig(),
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.config = config

    async def _run_atomic(
        self, name: str, op: Callable[[AsyncSession], Awaitable[T]]
    ) -> T:
        """Run ``op`` in a transaction, retrying on conflicts.

        Raises:
            TemporaryConflict: If every attempt conflicted.
        """
        max_attempts = self.config.max_attempts
        for attempt in range(1, max_attempts + 1):
            session: AsyncSession = self.session_factory()
            try:
                result = await op(session)
                await session.commit()
                return result
            except ConflictError as e:
                await session.rollback()
                logger.debug(f"{name} attempt {attempt} conflicted: {e}")
            except DBAPIError as e:
                await session.rollback()
                if not is_transient_error(e):
                    raise
                logger.debug(f"{name} attempt {attempt} failed: {e.orig!r}")
            except BaseException:
                await session.rollback()
                raise
            finally:
                await session.close()

            if attempt < max_attempts:
                await asyncio.sleep(
                    random.uniform(0, self.config.retry_delay * attempt)
                )

        logger.warning(f"{name} gave up after {max_attempts} attempts")
        raise TemporaryConflict

    def _emit(
        self,
        kind: NotificationKind,
        registration: Registration,
        **payload: Any,
    ):
        """Emit a notification, logging and discarding any error."""
        body = {
            "registration": get_converter().unstructure(registration),
            **payload,
        }
        try:
            self.notifier.emit(
                kind, registration.participant_id, registration.event_id, body
            )
        except Exception:
            logger.opt(exception=True).error(
                f"Failed to emit {kind.value} for registration {registration.id}"
            )

    # Register

    async def register(self, participant_id: str, event_id: str) -> RegistrationResult:
        """Register a participant, or waitlist them if the event is full.

        Raises:
            EventNotFound: If the event does not exist.
            EventNotOpen: If the event does not accept registrations.
            EventFull: If the event is full and waitlisting is disabled.
            AlreadyRegistered: If the participant is registered or waitlisted.
            TemporaryConflict: If the event stayed too busy to register.
        """

        async def op(session: AsyncSession) -> RegistrationResult:
            return await self._register(session, participant_id, event_id)

        result = await self._run_atomic("register", op)
        reg = result.registration

        if reg.status == RegistrationStatus.registered:
            audit_log.bind(
                type=AuditLogType.registration_create, event_id=event_id
            ).success(
                "Participant {} registered for {} ({})",
                participant_id,
                event_id,
                reg.id,
            )
            self._emit(NotificationKind.registration_confirmed, reg)
        else:
            audit_log.bind(
                type=AuditLogType.registration_waitlist, event_id=event_id
            ).success(
                "Participant {} waitlisted for {} at position {} ({})",
                participant_id,
                event_id,
                reg.waitlist_position,
                reg.id,
            )
            self._emit(
                NotificationKind.waitlisted,
                reg,
                waitlist_position=reg.waitlist_position,
            )

        return result

    async def _register(
        self, session: AsyncSession, participant_id: str, event_id: str
    ) -> RegistrationResult:
        capacity = CapacityOracle(session)
        store = RegistrationService(session)
        waitlist = WaitlistSequencer(session)

        snapshot = await capacity.read_snapshot(event_id, lock=True)
        existing = await store.get_by_participant(participant_id, event_id, lock=True)

        verdict = evaluate_eligibility(
            snapshot, existing, allow_waitlist=self.config.allow_waitlist
        )
        raise_for_verdict(verdict)
        assert snapshot is not None

        entity = (
            existing
            if existing is not None
            else RegistrationEntity.create(participant_id, event_id)
        )

        if verdict.has_capacity:
            entity.register()
            delta = 1
        else:
            entity.waitlist(await waitlist.next_position(event_id))
            delta = 0

        if existing is None:
            await store.create_registration(entity)

        await capacity.apply_delta(event_id, delta, snapshot.version)
        await session.flush()
        return RegistrationResult(entity.get_model())

    # Cancel

    async def cancel(
        self, registration_id: UUID, acting_participant_id: str
    ) -> CancellationResult:
        """Cancel a registration, promoting the head of the waitlist.

        Raises:
            RegistrationNotFound: If the registration does not exist.
            NotOwner: If the registration belongs to someone else.
            AlreadyCancelled: If it was already cancelled.
            InvalidStatusForCancellation: If attendance was already recorded.
            TemporaryConflict: If the event stayed too busy to cancel.
        """

        async def op(session: AsyncSession) -> CancellationResult:
            return await self._cancel(session, registration_id, acting_participant_id)

        result = await self._run_atomic("cancel", op)
        cancelled = result.cancelled

        audit_log.bind(
            type=AuditLogType.registration_cancel, event_id=cancelled.event_id
        ).success(
            "Registration {} of participant {} cancelled",
            cancelled.id,
            cancelled.participant_id,
        )
        self._emit(NotificationKind.registration_cancelled, cancelled)

        if result.promoted is not None:
            promoted = result.promoted
            audit_log.bind(
                type=AuditLogType.registration_promote, event_id=promoted.event_id
            ).success(
                "Registration {} of participant {} promoted from the waitlist",
                promoted.id,
                promoted.participant_id,
            )
            self._emit(NotificationKind.promoted_from_waitlist, promoted)

        return result

    async def _cancel(
        self, session: AsyncSession, registration_id: UUID, acting_participant_id: str
    ) -> CancellationResult:
        capacity = CapacityOracle(session)
        store = RegistrationService(session)
        waitlist = WaitlistSequencer(session)

        # Look up the event first; the event row is always locked before any
        # registration row.
        entity = await store.get_registration(registration_id)
        if entity is None:
            raise RegistrationNotFound(registration_id)
        if entity.participant_id != acting_participant_id:
            raise NotOwner

        event_id = entity.event_id
        snapshot = await capacity.read_snapshot(event_id, lock=True)
        if snapshot is None:
            raise EventNotFound

        entity = await store.get_registration(registration_id, lock=True)
        if entity is None:
            raise RegistrationNotFound(registration_id)

        position = entity.waitlist_position
        prev_status = entity.cancel()
        promoted: Optional[RegistrationEntity] = None
        await session.flush()

        if prev_status == RegistrationStatus.waitlisted:
            delta = 0
            await self._close_gap(waitlist, event_id, position)
        else:
            delta = -1
            # capacity may have been lowered below the count by the event service
            seats_taken = snapshot.current_count - 1
            if snapshot.capacity is None or seats_taken < snapshot.capacity:
                promoted = await waitlist.head(event_id)
            if promoted is not None:
                vacated = promoted.promote()
                delta += 1
                await session.flush()
                await self._close_gap(waitlist, event_id, vacated)

        await capacity.apply_delta(event_id, delta, snapshot.version)
        await session.flush()

        return CancellationResult(
            cancelled=entity.get_model(),
            promoted=promoted.get_model() if promoted is not None else None,
        )

    async def _close_gap(
        self, waitlist: WaitlistSequencer, event_id: str, position: Optional[int]
    ):
        if position is not None:
            await waitlist.close_gap(event_id, position)
        else:
            await waitlist.renumber(event_id)

    # Attendance

    async def mark_attendance(
        self, registration_id: UUID, acting_organizer_id: str, attended: bool
    ) -> Registration:
        """Record whether a registered participant attended.

        Raises:
            RegistrationNotFound: If the registration does not exist.
            NotOrganizer: If the caller does not organize the event.
            EventNotEnded: If the event has not ended yet.
            InvalidStatusForAttendance: If the registration is not ``registered``.
        """

        async def op(session: AsyncSession) -> Registration:
            return await self._mark_attendance(
                session, registration_id, acting_organizer_id, attended
            )

        reg = await self._run_atomic("mark_attendance", op)

        audit_log.bind(
            type=AuditLogType.registration_attendance, event_id=reg.event_id
        ).success(
            "Registration {} of participant {} marked {}",
            reg.id,
            reg.participant_id,
            reg.status.value,
        )
        self._emit(NotificationKind.attendance_marked, reg, attended=attended)
        return reg

    async def _mark_attendance(
        self,
        session: AsyncSession,
        registration_id: UUID,
        acting_organizer_id: str,
        attended: bool,
    ) -> Registration:
        capacity = CapacityOracle(session)
        store = RegistrationService(session)

        entity = await store.get_registration(registration_id)
        if entity is None:
            raise RegistrationNotFound(registration_id)

        snapshot = await capacity.read_snapshot(entity.event_id, lock=True)
        if snapshot is None:
            raise EventNotFound
        if snapshot.organizer_id is None:
            raise NotOrganizer
        if snapshot.organizer_id != acting_organizer_id:
            raise NotOrganizer
        if not snapshot.has_ended():
            raise EventNotEnded

        entity = await store.get_registration(registration_id, lock=True)
        if entity is None:
            raise RegistrationNotFound(registration_id)

        entity.mark_attendance(attended)
        await capacity.apply_delta(entity.event_id, 0, snapshot.version)
        await session.flush()
        return entity.get_model()

    # Reconciliation

    async def reconcile(self, event_id: str) -> ReconcileResult:
        """Recount the registered participants and renumber the waitlist.

        Repairs a counter or waitlist left inconsistent by a crash or a bug. Not
        meant for the request path.

        Raises:
            EventNotFound: If the event does not exist.
        """

        async def op(session: AsyncSession) -> ReconcileResult:
            return await self._reconcile(session, event_id)

        result = await self._run_atomic("reconcile", op)

        if result.counter_repaired:
            logger.warning(
                f"Capacity counter of {event_id} was {result.previous_count}, "
                f"recounted {result.current_count}"
            )

        if result.counter_repaired or result.renumbered:
            audit_log.bind(
                type=AuditLogType.capacity_reconcile, event_id=event_id
            ).success(
                "Reconciled {}: count {} -> {}, {} waitlist positions rewritten",
                event_id,
                result.previous_count,
                result.current_count,
                result.renumbered,
            )

        return result

    async def _reconcile(self, session: AsyncSession, event_id: str) -> ReconcileResult:
        capacity = CapacityOracle(session)
        store = RegistrationService(session)
        waitlist = WaitlistSequencer(session)

        snapshot = await capacity.read_snapshot(event_id, lock=True)
        if snapshot is None:
            raise EventNotFound

        count = await store.count_registered(event_id)
        renumbered = await waitlist.renumber(event_id)

        if count != snapshot.current_count:
            await capacity.set_count(event_id, count, snapshot.version)
        else:
            await capacity.apply_delta(event_id, 0, snapshot.version)

        return ReconcileResult(
            event_id=event_id,
            previous_count=snapshot.current_count,
            current_count=count,
            renumbered=renumbered,
        )

    # Read accessors

    async def check_eligibility(
        self, participant_id: str, event_id: str
    ) -> EligibilityVerdict:
        """Check whether a participant could register right now.

        Advisory: :meth:`register` re-checks and is authoritative.
        """
        async with self.session_factory() as session:
            checker = EligibilityChecker(session, self.config.allow_waitlist)
            return await checker.check(participant_id, event_id)

    async def get_registration(self, registration_id: UUID) -> Optional[Registration]:
        """Get a registration by ID."""
        async with self.session_factory() as session:
            entity = await RegistrationService(session).get_registration(
                registration_id
            )
            return entity.get_model() if entity is not None else None

    async def get_capacity(self, event_id: str) -> Optional[CapacitySnapshot]:
        """Get the capacity snapshot of an event, or ``None``."""
        async with self.session_factory() as session:
            return await CapacityOracle(session).read_snapshot(event_id)

    async def list_by_event(
        self,
        event_id: str,
        status: Optional[RegistrationStatus] = None,
        *,
        page: int = 0,
        per_page: Optional[int] = None,
    ) -> Sequence[Registration]:
        """List an event's registrations, optionally filtered by status.

        Args:
            event_id: The event ID.
            status: Only list registrations with this status.
            page: The 0-based page number.
            per_page: The page size, or ``None`` to list everything.
        """
        async with self.session_factory() as session:
            entities = await RegistrationService(session).list_by_event(
                event_id, status, page=page, per_page=per_page
            )
            return [e.get_model() for e in entities]

    async def list_by_participant(
        self,
        participant_id: str,
        status: Optional[RegistrationStatus] = None,
        *,
        page: int = 0,
        per_page: Optional[int] = None,
    ) -> Sequence[Registration]:
        """List a participant's registrations, newest first."""
        async with self.session_factory() as session:
            entities = await RegistrationService(session).list_by_participant(
                participant_id, status, page=page, per_page=per_page
            )
            return [e.get_model() for e in entities]

    async def waitlist(self, event_id: str) -> Sequence[Registration]:
        """List an event's waitlist in queue order."""
        async with self.session_factory() as session:
            entities = await WaitlistSequencer(session).list_entries(event_id)
            return [e.get_model() for e in entities]

    async def waitlist_count(self, event_id: str) -> int:
        """Count an event's waitlisted registrations."""
        async with self.session_factory() as session:
            return await WaitlistSequencer(session).count(event_id)

    async def registration_stats(self, event_id: str) -> RegistrationStats:
        """Get per-status counts and capacity figures for an event.

        Raises:
            EventNotFound: If the event does not exist.
        """
        async with self.session_factory() as session:
            snapshot = await CapacityOracle(session).read_snapshot(event_id)
            if snapshot is None:
                raise EventNotFound
            counts = await RegistrationService(session).count_by_status(event_id)
            return build_stats(counts, snapshot.capacity, snapshot.current_count)
