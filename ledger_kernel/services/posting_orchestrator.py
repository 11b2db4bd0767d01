"""
Posting Orchestrator - transport-agnostic facade over the ledger kernel.

The Orchestrator ties together:
- DocumentPostingService: projection, journal posting, inventory movements
- VoidService: idempotent reversal of both ledgers
- LedgerSelector: balances
- AccountDirectory, InventoryLedger, PeriodGuard: administrative helpers

Transaction boundary: every public method runs in exactly one unit of work
from ``Database.session_scope()``; it is committed on success and rolled back
as a whole on any exception.  Services below flush only.

Concurrency:
- A void that loses a race on the DocumentReversal marker (IntegrityError)
  reports already_processed=True.
- A PostgreSQL serialization failure (SQLSTATE 40001) during a void is
  retried once in a fresh transaction; the retry's idempotency check then
  resolves it.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerSettings
from ledger_kernel.db.engine import Database, is_serialization_failure
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.documents import Document
from ledger_kernel.domain.dtos import PostingResult, StockCheck, VoidResult
from ledger_kernel.domain.references import ReferenceScheme
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.logging_config import LogContext, configure_logging, get_logger
from ledger_kernel.models.account import AccountPurpose, AccountType, NormalBalance
from ledger_kernel.models.inventory import ProductType
from ledger_kernel.selectors.journal_selector import JournalEntryDTO, JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector, TrialBalanceRow
from ledger_kernel.services.account_directory import AccountDirectory
from ledger_kernel.services.document_posting import DocumentPostingService
from ledger_kernel.services.inventory_ledger import InventoryLedger
from ledger_kernel.services.journal_poster import JournalPoster
from ledger_kernel.services.period_guard import PeriodGuard
from ledger_kernel.services.void_service import VoidService

logger = get_logger("services.posting_orchestrator")

VOID_ATTEMPTS = 2


@dataclass(frozen=True)
class LedgerServices:
    """The service graph bound to one session."""

    session: Session
    accounts: AccountDirectory
    periods: PeriodGuard
    poster: JournalPoster
    inventory: InventoryLedger
    documents: DocumentPostingService
    voids: VoidService
    ledger: LedgerSelector
    journal: JournalSelector


def build_services(
    session: Session,
    settings: LedgerSettings | None = None,
    clock: Clock | None = None,
) -> LedgerServices:
    """Wire every kernel service onto ``session``."""
    settings = settings or LedgerSettings()
    clock = clock or SystemClock()
    references = ReferenceScheme(settings.references.legacy_aliases)

    accounts = AccountDirectory(session)
    periods = PeriodGuard(session, clock)
    poster = JournalPoster(session, periods, clock)
    inventory = InventoryLedger(session, clock)
    documents = DocumentPostingService(
        session,
        accounts,
        poster,
        inventory,
        references,
        update_cost_on_receipt=settings.inventory.update_cost_on_receipt,
        require_positive_total=settings.posting.require_positive_total,
    )
    voids = VoidService(session, poster, inventory, references, clock)
    return LedgerServices(
        session=session,
        accounts=accounts,
        periods=periods,
        poster=poster,
        inventory=inventory,
        documents=documents,
        voids=voids,
        ledger=LedgerSelector(session),
        journal=JournalSelector(session),
    )


class PostingOrchestrator:
    """
    Orchestrates posting, voiding and balance queries.

    Usage:
        orchestrator = PostingOrchestrator.from_settings(load_settings())
        result = orchestrator.post_document(scope, sale, actor_id)
        orchestrator.void_document(scope, sale.number, actor_id, reason="cancelled")
    """

    def __init__(
        self,
        database: Database,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        self._db = database
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings,
        clock: Clock | None = None,
    ) -> "PostingOrchestrator":
        """Configure logging, open the database and build an orchestrator."""
        configure_logging(level=settings.logging.level)
        return cls(Database(settings.database), settings, clock)

    @property
    def database(self) -> Database:
        return self._db

    @contextmanager
    def unit_of_work(
        self,
        scope: ScopeContext,
        actor_id: UUID | None = None,
        reference: str | None = None,
    ) -> Iterator[LedgerServices]:
        """One transaction with the service graph and log context bound."""
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())
        with LogContext.bind(
            scope,
            correlation_id=correlation_id,
            actor_id=actor_id,
            reference=reference,
        ):
            with self._db.session_scope() as session:
                yield build_services(session, self._settings, self._clock)

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def post_document(
        self,
        scope: ScopeContext,
        document: Document,
        actor_id: UUID | None,
    ) -> PostingResult:
        with self.unit_of_work(scope, actor_id, document.number) as services:
            return services.documents.post_document(scope, document, actor_id)

    def void_document(
        self,
        scope: ScopeContext,
        original_reference: str,
        actor_id: UUID | None = None,
        reason: str = "",
    ) -> VoidResult:
        for attempt in range(1, VOID_ATTEMPTS + 1):
            try:
                with self.unit_of_work(scope, actor_id, original_reference) as services:
                    return services.voids.void(scope, original_reference, actor_id, reason)
            except IntegrityError:
                if self._void_recorded(scope, original_reference):
                    logger.info(
                        "void_already_processed",
                        extra={"reference": original_reference, "cause": "concurrent_void"},
                    )
                    return VoidResult.already_done(original_reference)
                raise
            except DBAPIError as exc:
                if not is_serialization_failure(exc) or attempt == VOID_ATTEMPTS:
                    raise
                logger.warning(
                    "void_serialization_retry",
                    extra={"reference": original_reference, "attempt": attempt},
                )
        raise AssertionError("unreachable")

    def get_account_balance(
        self,
        scope: ScopeContext,
        account_id: UUID,
        as_of: date | None = None,
    ) -> Decimal:
        """Balance in the account's normal-balance sign, POSTED and VOIDED entries included."""
        with self.unit_of_work(scope) as services:
            return services.ledger.account_balance(scope, account_id, as_of).normal_balance_amount

    def _void_recorded(self, scope: ScopeContext, original_reference: str) -> bool:
        with self.unit_of_work(scope, reference=original_reference) as services:
            return services.voids.is_already_processed(scope, original_reference)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def trial_balance(self, scope: ScopeContext, as_of: date | None = None) -> list[TrialBalanceRow]:
        with self.unit_of_work(scope) as services:
            return services.ledger.trial_balance(scope, as_of)

    def entries_by_reference(self, scope: ScopeContext, reference: str) -> list[JournalEntryDTO]:
        with self.unit_of_work(scope, reference=reference) as services:
            return services.journal.entries_by_reference(scope, reference)

    def current_stock(self, scope: ScopeContext, product_id: UUID) -> Decimal:
        with self.unit_of_work(scope) as services:
            return services.inventory.current_stock(scope, product_id)

    def verify_stock(self, scope: ScopeContext, product_id: UUID) -> StockCheck:
        with self.unit_of_work(scope) as services:
            return services.inventory.verify_stock(scope, product_id)

    # ------------------------------------------------------------------
    # Administrative helpers
    # ------------------------------------------------------------------

    def create_account(
        self,
        scope: ScopeContext,
        code: str,
        name: str,
        account_type: AccountType,
        actor_id: UUID | None = None,
        *,
        normal_balance: NormalBalance | None = None,
        purpose: AccountPurpose | None = None,
    ) -> UUID:
        with self.unit_of_work(scope, actor_id) as services:
            account = services.accounts.create_account(
                scope,
                code,
                name,
                account_type,
                actor_id,
                normal_balance=normal_balance,
                purpose=purpose,
            )
            return account.id

    def assign_purpose(
        self,
        scope: ScopeContext,
        account_id: UUID,
        purpose: AccountPurpose | None,
        actor_id: UUID | None = None,
    ) -> None:
        with self.unit_of_work(scope, actor_id) as services:
            services.accounts.assign_purpose(scope, account_id, purpose, actor_id)

    def deactivate_account(
        self,
        scope: ScopeContext,
        account_id: UUID,
        actor_id: UUID | None = None,
    ) -> None:
        with self.unit_of_work(scope, actor_id) as services:
            services.accounts.deactivate(scope, account_id, actor_id)

    def delete_account(self, scope: ScopeContext, account_id: UUID) -> None:
        with self.unit_of_work(scope) as services:
            services.accounts.delete_account(scope, account_id)

    def create_product(
        self,
        scope: ScopeContext,
        sku: str,
        name: str,
        product_type: ProductType = ProductType.PRODUCT,
        cost_price: Decimal = Decimal("0"),
        actor_id: UUID | None = None,
    ) -> UUID:
        with self.unit_of_work(scope, actor_id) as services:
            product = services.inventory.create_product(
                scope, sku, name, product_type, cost_price, actor_id
            )
            return product.id

    def lock_period(
        self,
        scope: ScopeContext,
        year: int,
        month: int,
        actor_id: UUID | None = None,
    ) -> None:
        with self.unit_of_work(scope, actor_id) as services:
            services.periods.lock_period(scope, year, month, actor_id)

    def unlock_period(
        self,
        scope: ScopeContext,
        year: int,
        month: int,
        actor_id: UUID | None = None,
    ) -> None:
        with self.unit_of_work(scope, actor_id) as services:
            services.periods.unlock_period(scope, year, month, actor_id)
