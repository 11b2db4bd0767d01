"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (route handlers, workers) translate ledger failures into response
codes.  They must be able to do that by TYPE and by machine-readable CODE,
never by parsing message text:

    try:
        orchestrator.post_document(scope, document, actor_id)
    except PeriodLockedError as e:
        api_response(409, code=e.code, period=e.period_code)
    except PostingError as e:
        api_response(422, code=e.code)

Every exception:
  1. Has a ``code`` class attribute (API-safe, stable).
  2. Carries the structured context as attributes (survives logging via
     StructuredFormatter, which emits them as ``exc_<field>``).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- InvalidLineError
    |   +-- CrossCompanyAccountError
    |   +-- AccountInactiveError
    |   +-- DocumentAlreadyPostedError
    |   +-- DocumentValidationError
    |
    +-- PeriodError
    |   +-- PeriodLockedError
    |   +-- PeriodAlreadyLockedError
    |   +-- InvalidPeriodError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- DuplicateAccountError
    |   +-- DuplicatePurposeError
    |   +-- AccountReferencedError
    |
    +-- InventoryError
    |   +-- ProductNotFoundError
    |   +-- DuplicateProductError
    |   +-- InvalidMovementError
    |
    +-- ReversalError
    |   +-- NothingToVoidError
    |   +-- AlreadyVoidedError
    |   +-- PartialOriginalDataError
    |
    +-- TenantIsolationError
        +-- CrossTenantAccessError

    LedgerWarning (UserWarning, never raised by the kernel)
    +-- NegativeStockWarning

===============================================================================
PROPAGATION
===============================================================================

Every LedgerError aborts the enclosing unit of work: the session scope rolls
back and re-raises, so the caller sees the original exception.  There is no
partial commit.  NegativeStockWarning is the only non-fatal condition; it is
logged and returned on the result object.
"""


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "LEDGER_ERROR"


# Posting-related exceptions


class PostingError(LedgerError):
    """Base exception for posting-related errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, reference: str | None = None):
        self.debits = debits
        self.credits = credits
        self.reference = reference
        super().__init__(
            f"Unbalanced entry {reference}: debits={debits}, credits={credits}"
        )


class InvalidLineError(PostingError):
    """A journal line is malformed (both/neither side set, negative, or too precise)."""

    code: str = "INVALID_LINE"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Invalid journal line #{line_index}: {reason}")


class CrossCompanyAccountError(PostingError):
    """A line references an account owned by a different tenant or company."""

    code: str = "CROSS_COMPANY_ACCOUNT"

    def __init__(self, account_id: str, company_id: str):
        self.account_id = account_id
        self.company_id = company_id
        super().__init__(
            f"Account {account_id} does not belong to company {company_id}"
        )


class AccountInactiveError(PostingError):
    """Account is deactivated and cannot receive postings."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str, account_code: str):
        self.account_id = account_id
        self.account_code = account_code
        super().__init__(f"Account {account_code} ({account_id}) is inactive")


class DocumentAlreadyPostedError(PostingError):
    """A journal entry already exists for this document reference."""

    code: str = "DOCUMENT_ALREADY_POSTED"

    def __init__(self, reference: str, journal_entry_id: str):
        self.reference = reference
        self.journal_entry_id = journal_entry_id
        super().__init__(
            f"Document {reference} already posted as journal entry {journal_entry_id}"
        )


class DocumentValidationError(PostingError):
    """The source document payload is not postable."""

    code: str = "DOCUMENT_INVALID"

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Document {reference} is invalid: {reason}")


# Period-related exceptions


class PeriodError(LedgerError):
    """Base exception for period-related errors."""

    code: str = "PERIOD_ERROR"


class PeriodLockedError(PeriodError):
    """Attempted to post into a locked accounting period."""

    code: str = "PERIOD_LOCKED"

    def __init__(self, company_id: str, period_code: str, entry_date: str):
        self.company_id = company_id
        self.period_code = period_code
        self.entry_date = entry_date
        super().__init__(
            f"Cannot post to locked period {period_code} for company "
            f"{company_id} (entry_date: {entry_date})"
        )


class PeriodAlreadyLockedError(PeriodError):
    """Period is already locked."""

    code: str = "PERIOD_ALREADY_LOCKED"

    def __init__(self, company_id: str, period_code: str):
        self.company_id = company_id
        self.period_code = period_code
        super().__init__(f"Period {period_code} is already locked for company {company_id}")


class InvalidPeriodError(PeriodError):
    """Year/month pair does not name a calendar month."""

    code: str = "INVALID_PERIOD"

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(f"Invalid accounting period {year}-{month}")


# Account-related exceptions


class AccountError(LedgerError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """No account matches the id, or no account carries the purpose tag."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(
        self,
        company_id: str,
        account_id: str | None = None,
        purpose: str | None = None,
    ):
        self.company_id = company_id
        self.account_id = account_id
        self.purpose = purpose
        if purpose is not None:
            message = f"No account with purpose {purpose} for company {company_id}"
        else:
            message = f"Account not found: {account_id}"
        super().__init__(message)


class DuplicateAccountError(AccountError):
    """Account code already used in the company's chart of accounts."""

    code: str = "DUPLICATE_ACCOUNT"

    def __init__(self, company_id: str, account_code: str):
        self.company_id = company_id
        self.account_code = account_code
        super().__init__(f"Account code {account_code} already exists for company {company_id}")


class DuplicatePurposeError(AccountError):
    """Purpose tag already assigned to another account in the company."""

    code: str = "DUPLICATE_PURPOSE"

    def __init__(self, company_id: str, purpose: str, existing_account_id: str):
        self.company_id = company_id
        self.purpose = purpose
        self.existing_account_id = existing_account_id
        super().__init__(
            f"Purpose {purpose} already assigned to account {existing_account_id} "
            f"for company {company_id}"
        )


class AccountReferencedError(AccountError):
    """Account cannot be deleted because posted lines reference it."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: str, line_count: int):
        self.account_id = account_id
        self.line_count = line_count
        super().__init__(
            f"Account {account_id} is referenced by {line_count} journal line(s)"
        )


# Inventory-related exceptions


class InventoryError(LedgerError):
    """Base exception for inventory ledger errors."""

    code: str = "INVENTORY_ERROR"


class ProductNotFoundError(InventoryError):
    """Product with given ID was not found in the scope."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class DuplicateProductError(InventoryError):
    """SKU already exists in the company's catalogue."""

    code: str = "DUPLICATE_PRODUCT"

    def __init__(self, company_id: str, sku: str):
        self.company_id = company_id
        self.sku = sku
        super().__init__(f"Product SKU {sku} already exists for company {company_id}")


class InvalidMovementError(InventoryError):
    """Movement cannot be recorded (zero quantity, non-stock product)."""

    code: str = "INVALID_MOVEMENT"

    def __init__(self, product_id: str, reason: str):
        self.product_id = product_id
        self.reason = reason
        super().__init__(f"Invalid inventory movement for product {product_id}: {reason}")


# Reversal-related exceptions


class ReversalError(LedgerError):
    """Base exception for void/reversal errors."""

    code: str = "REVERSAL_ERROR"


class NothingToVoidError(ReversalError):
    """No POSTED journal entry or movement exists for the reference."""

    code: str = "NOTHING_TO_VOID"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Nothing to void for reference {reference}")


class AlreadyVoidedError(ReversalError):
    """
    Original entries are VOIDED but no reversing records exist.

    This is a data-integrity anomaly, not an idempotent repeat: a clean
    repeat always finds the VOID-<reference> records.
    """

    code: str = "ALREADY_VOIDED"

    def __init__(self, reference: str, entry_ids: list[str]):
        self.reference = reference
        self.entry_ids = entry_ids
        super().__init__(
            f"Reference {reference} is marked VOIDED but has no reversing records "
            f"(entries: {', '.join(entry_ids)})"
        )


class PartialOriginalDataError(ReversalError):
    """Journal entries and inventory movements for a reference disagree."""

    code: str = "PARTIAL_ORIGINAL_DATA"

    def __init__(
        self,
        reference: str,
        entry_count: int,
        expected_movements: int,
        found_movements: int,
    ):
        self.reference = reference
        self.entry_count = entry_count
        self.expected_movements = expected_movements
        self.found_movements = found_movements
        super().__init__(
            f"Partial original data for {reference}: {entry_count} journal "
            f"entr(y/ies) expecting {expected_movements} movement(s), "
            f"found {found_movements}"
        )


# Tenant isolation


class TenantIsolationError(LedgerError):
    """Base exception for tenant/company boundary violations."""

    code: str = "TENANT_ISOLATION"


class CrossTenantAccessError(TenantIsolationError):
    """A record was addressed from outside its (tenant, company) scope."""

    code: str = "CROSS_TENANT_ACCESS"

    def __init__(self, entity: str, entity_id: str, tenant_id: str, company_id: str):
        self.entity = entity
        self.entity_id = entity_id
        self.tenant_id = tenant_id
        self.company_id = company_id
        super().__init__(
            f"{entity} {entity_id} is not visible to tenant {tenant_id} / "
            f"company {company_id}"
        )


# Warnings (recorded, never raised by the kernel)


class LedgerWarning(UserWarning):
    """Base class for non-fatal ledger conditions."""

    code: str = "LEDGER_WARNING"


class NegativeStockWarning(LedgerWarning):
    """A movement left a product with negative stock."""

    code: str = "NEGATIVE_STOCK"

    def __init__(self, product_id: str, resulting_stock: str, reference: str):
        self.product_id = product_id
        self.resulting_stock = resulting_stock
        self.reference = reference
        super().__init__(
            f"Product {product_id} stock is negative ({resulting_stock}) "
            f"after movement {reference}"
        )
