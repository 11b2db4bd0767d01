"""
VoidService -- idempotent reversal of a posted document in both ledgers.

Responsibility:
    Given a document reference, post a reversing journal entry for every
    POSTED original, mark the originals VOIDED, record a VOID movement
    negating every original movement, and write the DocumentReversal marker.

Architecture position:
    Kernel > Services.  Flushes only; PostingOrchestrator commits, and
    translates a marker IntegrityError into already_processed.

Invariants enforced:
    - A document is voided at most once.  Repeat calls return
      already_processed=True and write nothing.
    - After a void, per product the original and VOID quantities sum to
      zero, and per account the original and reversing amounts net to zero.
    - Rows are never deleted; originals only change status.
    - Voiding a receipt that changed a product cost_price restores the
      previous cost, unless a later document changed it again.
    - Reversals are dated "today" from the injected clock and pass the
      period guard for that date.

Failure modes:
    - NothingToVoidError: no POSTED entry (and no movement) for the reference.
    - AlreadyVoidedError: originals are VOIDED but no reversing records exist.
    - PartialOriginalDataError: entries and movements disagree.
    - PeriodLockedError: today's period is locked.
    - IntegrityError on the marker flush when a concurrent void won the race.
"""

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import LineSpec, VoidResult
from ledger_kernel.domain.references import (
    ReferenceScheme,
    is_void_reference,
    void_reference,
)
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.exceptions import (
    AlreadyVoidedError,
    NothingToVoidError,
    PartialOriginalDataError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.inventory import InventoryMovement, MovementType
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, SourceType
from ledger_kernel.models.reversal import DocumentReversal
from ledger_kernel.services.inventory_ledger import InventoryLedger
from ledger_kernel.services.journal_poster import JournalPoster

logger = get_logger("services.void_service")


class VoidService:
    """
    Voids documents.

    Usage:
        service = VoidService(session, poster, inventory, clock=clock)
        result = service.void(scope, "1001", actor_id, reason="customer cancelled")
    """

    def __init__(
        self,
        session: Session,
        poster: JournalPoster,
        inventory: InventoryLedger,
        references: ReferenceScheme | None = None,
        clock: Clock | None = None,
    ):
        self.session = session
        self._poster = poster
        self._inventory = inventory
        self._references = references or ReferenceScheme()
        self._clock = clock or SystemClock()

    def void(
        self,
        scope: ScopeContext,
        original_reference: str,
        actor_id: UUID | None = None,
        reason: str = "",
    ) -> VoidResult:
        if is_void_reference(original_reference):
            raise NothingToVoidError(original_reference)
        originals = self._references.original_candidates(original_reference)

        logger.info(
            "void_started",
            extra={"reference": original_reference, "candidates": list(originals)},
        )

        # Step 1: lock originals, then check idempotency under the lock.
        entries = self._load_entries_for_update(scope, originals)
        if self.is_already_processed(scope, original_reference):
            logger.info("void_already_processed", extra={"reference": original_reference})
            return VoidResult.already_done(original_reference)

        # Step 2: classify what exists for the reference.
        movements = self._inventory.movements_for(scope, originals)
        posted = self._validate_originals(original_reference, entries, movements)

        # Reversals carry the spelling the original was stored under.
        stored_reference = posted[0].reference
        void_ref = void_reference(stored_reference)
        today = self._clock.today()

        # Claim the idempotency key first; a concurrent winner makes this
        # flush fail before any reversing row is written.
        marker = DocumentReversal(
            tenant_id=scope.tenant_id,
            company_id=scope.company_id,
            original_reference=self._references.bare(original_reference),
            void_reference=void_ref,
            reason=reason or None,
            actor_id=actor_id,
            created_by_id=actor_id,
        )
        self.session.add(marker)
        self.session.flush()

        # Step 3: reverse each POSTED original.
        reversal_ids: list[UUID] = []
        reversed_lines = 0
        for entry in posted:
            reversal = self._poster.post(
                scope,
                entry_date=today,
                memo=f"Void of {entry.reference}" + (f": {reason}" if reason else ""),
                reference=void_ref,
                lines=[
                    LineSpec(
                        account_id=line.account_id,
                        debit=line.credit,
                        credit=line.debit,
                        memo=line.memo,
                    )
                    for line in entry.lines
                ],
                actor_id=actor_id,
                source_type=SourceType.REVERSAL,
                expected_movements=entry.expected_movements,
                reversal_of_id=entry.id,
            )
            reversal_ids.append(reversal.id)
            reversed_lines += len(entry.lines)

            entry.status = JournalEntryStatus.VOIDED.value
            entry.voided_at = self._clock.now()
            entry.voided_by_id = actor_id
            entry.void_reason = reason or None
            entry.updated_by_id = actor_id
            logger.info(
                "journal_entry_voided",
                extra={"entry_id": str(entry.id), "reversal_entry_id": str(reversal.id)},
            )
        self.session.flush()

        # Step 4: negate every original movement.
        stock_deltas: dict[UUID, Decimal] = defaultdict(lambda: Decimal("0"))
        warnings = []
        for movement in movements:
            moved = self._inventory.move(
                scope,
                product_id=movement.product_id,
                movement_type=MovementType.VOID,
                quantity=-movement.quantity,
                reference=void_ref,
                unit_cost=movement.unit_cost,
                movement_date=today,
                reason=f"Void of {movement.reference}",
                actor_id=actor_id,
            )
            stock_deltas[movement.product_id] += moved.quantity
            warnings.extend(moved.warnings)
        self._restore_costs(scope, movements, actor_id)

        # Step 5: finish the marker.
        marker.reversed_lines = reversed_lines
        marker.reversed_movements = len(movements)
        self.session.flush()

        logger.info(
            "void_completed",
            extra={
                "reference": original_reference,
                "void_reference": void_ref,
                "reversal_entry_count": len(reversal_ids),
                "reversed_lines": reversed_lines,
                "reversed_movements": len(movements),
            },
        )

        return VoidResult(
            voided=True,
            already_processed=False,
            original_reference=stored_reference,
            void_reference=void_ref,
            reversal_entry_ids=tuple(reversal_ids),
            reversed_lines=reversed_lines,
            reversed_movements=len(movements),
            stock_deltas=dict(stock_deltas),
            warnings=tuple(warnings),
        )

    def is_already_processed(self, scope: ScopeContext, original_reference: str) -> bool:
        """
        True when a void of ``original_reference`` (any spelling) exists.

        Checks the marker first, then reversing journal entries and VOID
        movements under every canonical and alias void reference.
        """
        marker = self.session.execute(
            select(DocumentReversal.id).where(
                *scope.filter(DocumentReversal),
                DocumentReversal.original_reference
                == self._references.bare(original_reference),
            )
        ).scalar_one_or_none()
        if marker is not None:
            return True

        void_refs = self._references.void_candidates(original_reference)
        reversing_entry = self.session.execute(
            select(JournalEntry.id)
            .where(*scope.filter(JournalEntry), JournalEntry.reference.in_(void_refs))
            .limit(1)
        ).scalar_one_or_none()
        if reversing_entry is not None:
            return True

        void_movement = self.session.execute(
            select(InventoryMovement.id)
            .where(
                *scope.filter(InventoryMovement),
                InventoryMovement.reference.in_(void_refs),
            )
            .limit(1)
        ).scalar_one_or_none()
        return void_movement is not None

    def _load_entries_for_update(
        self,
        scope: ScopeContext,
        references: tuple[str, ...],
    ) -> list[JournalEntry]:
        return list(
            self.session.execute(
                select(JournalEntry)
                .where(*scope.filter(JournalEntry), JournalEntry.reference.in_(references))
                .order_by(JournalEntry.created_at, JournalEntry.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars()
        )

    def _restore_costs(
        self,
        scope: ScopeContext,
        movements: list[InventoryMovement],
        actor_id: UUID | None,
    ) -> None:
        """
        Put back cost_price values a voided receipt overwrote.

        A product whose cost has moved on since the receipt (a later receipt
        set another cost) keeps its current cost.
        """
        receipt_costs: dict[UUID, Decimal] = {}
        previous_costs: dict[UUID, Decimal] = {}
        for movement in movements:
            if movement.unit_cost is not None:
                receipt_costs[movement.product_id] = movement.unit_cost
            if movement.previous_cost_price is not None:
                previous_costs.setdefault(movement.product_id, movement.previous_cost_price)

        for product_id, previous_cost in previous_costs.items():
            product = self._inventory.get_product(scope, product_id)
            if product.cost_price != receipt_costs.get(product_id):
                logger.warning(
                    "cost_restore_skipped",
                    extra={
                        "product_id": str(product_id),
                        "cost_price": str(product.cost_price),
                        "previous_cost": str(previous_cost),
                    },
                )
                continue
            self._inventory.set_cost_price(scope, product_id, previous_cost, actor_id)

    def _validate_originals(
        self,
        reference: str,
        entries: list[JournalEntry],
        movements: list[InventoryMovement],
    ) -> list[JournalEntry]:
        """Return the POSTED originals, or raise for every anomaly."""
        if not entries:
            if movements:
                raise PartialOriginalDataError(reference, 0, 0, len(movements))
            raise NothingToVoidError(reference)

        posted = [e for e in entries if e.is_posted]
        voided = [e for e in entries if e.is_voided]

        if voided:
            logger.error(
                "voided_without_reversal",
                extra={"reference": reference, "entry_ids": [str(e.id) for e in voided]},
            )
            raise AlreadyVoidedError(reference, [str(e.id) for e in voided])
        if not posted:
            raise NothingToVoidError(reference)

        expected = sum(e.expected_movements for e in posted)
        if expected != len(movements):
            logger.error(
                "partial_original_data",
                extra={
                    "reference": reference,
                    "entry_count": len(posted),
                    "expected_movements": expected,
                    "found_movements": len(movements),
                },
            )
            raise PartialOriginalDataError(reference, len(posted), expected, len(movements))

        return posted
