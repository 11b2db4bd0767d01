"""
DocumentPostingService -- commits a projected document to both ledgers.

Responsibility:
    Duplicate check, projection, journal posting and inventory movements for
    one business document, all inside the caller's transaction.

Architecture position:
    Kernel > Services.  Flushes only; PostingOrchestrator commits.

Invariants enforced:
    - A document number is posted at most once (its own spelling or any
      legacy alias).
    - JournalEntry.expected_movements equals the number of movements
      recorded with it.
    - When a receipt changes a product cost_price, the first movement for
      that product keeps the previous cost so a void can restore it.
    - Either everything for the document is flushed or the caller rolls
      everything back.

Failure modes:
    - DocumentAlreadyPostedError.
    - Anything raised by DocumentProjector, JournalPoster or InventoryLedger.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.documents import Document
from ledger_kernel.domain.dtos import PostingResult, Resolution
from ledger_kernel.domain.projector import DocumentProjector
from ledger_kernel.domain.references import ReferenceScheme
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.exceptions import DocumentAlreadyPostedError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountPurpose
from ledger_kernel.models.inventory import Product
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus
from ledger_kernel.services.account_directory import AccountDirectory
from ledger_kernel.services.inventory_ledger import InventoryLedger
from ledger_kernel.services.journal_poster import JournalPoster

logger = get_logger("services.document_posting")


class _ScopedLookups:
    """Binds the directory and catalogue to one scope for the projector."""

    def __init__(
        self,
        scope: ScopeContext,
        accounts: AccountDirectory,
        inventory: InventoryLedger,
    ):
        self._scope = scope
        self._accounts = accounts
        self._inventory = inventory

    def resolve(self, purpose: AccountPurpose) -> Resolution:
        return self._accounts.resolve(self._scope, purpose)

    def account_by_code(self, code: str) -> Account:
        return self._accounts.get_by_code(self._scope, code)

    def product(self, product_id: UUID) -> Product | None:
        return self._inventory.find_product(self._scope, product_id)


class DocumentPostingService:
    """
    Posts sales, purchase receipts and expenses.

    Usage:
        service = DocumentPostingService(session, accounts, poster, inventory)
        result = service.post_document(scope, sale, actor_id)
    """

    def __init__(
        self,
        session: Session,
        accounts: AccountDirectory,
        poster: JournalPoster,
        inventory: InventoryLedger,
        references: ReferenceScheme | None = None,
        *,
        update_cost_on_receipt: bool = False,
        require_positive_total: bool = True,
    ):
        self.session = session
        self._accounts = accounts
        self._poster = poster
        self._inventory = inventory
        self._references = references or ReferenceScheme()
        self._update_cost_on_receipt = update_cost_on_receipt
        self._require_positive_total = require_positive_total

    def post_document(
        self,
        scope: ScopeContext,
        document: Document,
        actor_id: UUID | None,
    ) -> PostingResult:
        self._ensure_not_posted(scope, document.number)

        projector = DocumentProjector(
            _ScopedLookups(scope, self._accounts, self._inventory),
            update_cost_on_receipt=self._update_cost_on_receipt,
            require_positive_total=self._require_positive_total,
        )
        projection = projector.project(document)

        entry = self._poster.post(
            scope,
            entry_date=document.document_date,
            memo=getattr(document, "memo", None) or getattr(document, "description", None),
            reference=document.number,
            lines=projection.journal_lines,
            actor_id=actor_id,
            source_type=projection.source_type,
            expected_movements=len(projection.movements),
        )

        movement_ids = []
        warnings = []
        cost_changing = {update.product_id for update in projection.cost_updates}
        for planned in projection.movements:
            previous_cost = None
            if planned.product_id in cost_changing:
                cost_changing.discard(planned.product_id)
                previous_cost = self._inventory.get_product(scope, planned.product_id).cost_price
            moved = self._inventory.move(
                scope,
                product_id=planned.product_id,
                movement_type=planned.movement_type,
                quantity=planned.quantity,
                reference=document.number,
                unit_cost=planned.unit_cost,
                movement_date=document.document_date,
                reason=planned.reason,
                actor_id=actor_id,
                previous_cost_price=previous_cost,
            )
            movement_ids.append(moved.movement_id)
            warnings.extend(moved.warnings)

        for update in projection.cost_updates:
            self._inventory.set_cost_price(scope, update.product_id, update.unit_cost, actor_id)

        logger.info(
            "document_posted",
            extra={
                "reference": document.number,
                "entry_id": str(entry.id),
                "source_type": entry.source_type,
                "movement_count": len(movement_ids),
                "warning_count": len(warnings),
            },
        )

        return PostingResult(
            journal_entry_id=entry.id,
            movement_ids=tuple(movement_ids),
            warnings=tuple(warnings),
        )

    def _ensure_not_posted(self, scope: ScopeContext, number: str) -> None:
        existing = self.session.execute(
            select(JournalEntry.id)
            .where(
                *scope.filter(JournalEntry),
                JournalEntry.reference.in_(self._references.original_candidates(number)),
                JournalEntry.status.in_(
                    [JournalEntryStatus.POSTED.value, JournalEntryStatus.VOIDED.value]
                ),
            )
            .limit(1)
        ).scalar_one_or_none()
        if existing is not None:
            raise DocumentAlreadyPostedError(number, str(existing))
