"""
Finance Store

This module ties together all the components and owns the one canonical
application state. Every mutation follows the same path:

    reconciler (pure) -> swap snapshot -> persist whole blob
    -> notify subscribers -> audit event

DESIGN DECISION: The in-memory snapshot is the source of truth for the
session. A failed write is logged and audited but never rolls the state
back, so memory and storage may diverge until the next successful save.

Snapshots are immutable. Subscribers always receive a complete AppState
and may keep it; a later mutation produces a new object instead of
changing the one they hold.

Asset, holding, liability and quote mutations also fold today's net worth
into the history. Nothing else ever touches the history, except a full
data import, which restores it verbatim.
"""

from datetime import date
from typing import Callable, Iterable, Optional
from uuid import UUID

import structlog

from finance_tracker.agents import AIServiceError, CsvExpenseParser, FinancialAdvisorAgent
from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
)
from finance_tracker.models.finance import (
    AppState,
    AssetInput,
    Budget,
    BudgetInput,
    Expense,
    HoldingInput,
    IncomingExpense,
    LiabilityInput,
    UserSettings,
)
from finance_tracker.persistence import (
    DataImportError,
    build_export,
    dump_state,
    load_legacy_budgets,
    load_state,
    parse_export,
)
from finance_tracker.reconcilers import (
    ImportReport,
    NotFoundError,
    add_or_update_holding,
    apply_quote_refresh,
    copy_budget,
    count_quoted_holdings,
    create_or_update_asset,
    create_or_update_budget,
    create_or_update_liability,
    delete_asset,
    delete_budget,
    delete_expense,
    delete_expenses,
    delete_expenses_in_view,
    delete_holding,
    delete_liability,
    import_expenses,
    recategorize,
    set_active_budget,
    update_expense,
    update_history,
)
from finance_tracker.services.market_data import (
    AlphaVantageQuoteService,
    QuoteServiceError,
)
from finance_tracker.services.storage import BlobStoreInterface, StorageError
from finance_tracker.validation import InputValidator, raise_for_errors


logger = structlog.get_logger(__name__)

Listener = Callable[[AppState], None]

IMPORT_CONFIRMATION = (
    "This will overwrite all your current data (budgets, assets, liabilities "
    "and net-worth history). Are you sure you want to continue?"
)


class FinanceStore:
    """
    Holds the application state and applies every mutation to it.

    Usage:
        store = FinanceStore(create_blob_store())
        store.load()
        unsubscribe = store.subscribe(render)
        store.save_budget(BudgetInput(name="2024", year=2024, categories=[...]))
    """

    def __init__(
        self,
        blob_store: BlobStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        validator: Optional[InputValidator] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            blob_store: Where the state and settings blobs live
            audit_logger: Receives an event per mutation. Local-only if None.
            settings: Storage keys and thresholds. Loaded from env if None.
            validator: Input validator shared by all reconcilers
            today: Calendar date used for net-worth snapshots and drafts
        """
        self._blob_store = blob_store
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app
        self._validator = validator or InputValidator(self._settings)
        self._today = today
        self._state = AppState()
        self._user_settings = UserSettings()
        self._listeners: list[Listener] = []

    # =========================================================================
    # SNAPSHOTS AND SUBSCRIBERS
    # =========================================================================

    @property
    def state(self) -> AppState:
        """The current immutable snapshot."""
        return self._state

    @property
    def user_settings(self) -> UserSettings:
        return self._user_settings

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call listener with every new snapshot.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _persist(self, key: str, value: str) -> bool:
        """Write one blob. Failures are logged and audited, never raised."""
        try:
            self._blob_store.set(key, value)
            return True
        except StorageError as e:
            self._audit(AuditEventBuilder.save_failed(key, str(e)))
            return False

    def _audit(self, event: Optional[AuditEvent]) -> None:
        if event is not None:
            self._audit_logger.log(event)

    def _commit(self, new_state: AppState, event: Optional[AuditEvent] = None) -> AppState:
        """Swap in a new snapshot, save it, tell subscribers, record the event."""
        if new_state is self._state:
            return new_state
        self._state = new_state
        self._persist(self._settings.data_key, dump_state(new_state))
        self._notify()
        self._audit(event)
        return new_state

    def load(self) -> AppState:
        """
        Read the state and settings from the blob store.

        Falls back to the legacy budgets-only keys when there is no state
        blob yet; migrated data is saved under the new key and the legacy
        keys are removed. A corrupt blob yields an empty state.

        Raises:
            StorageError: The blob store could not be read
        """
        raw = self._blob_store.get(self._settings.data_key)
        if raw is not None:
            try:
                state = load_state(raw)
            except ValueError as e:
                logger.error("state_blob_corrupt", key=self._settings.data_key, error=str(e))
                self._audit_logger.log_error("state_blob_corrupt", str(e))
                state = AppState()
        else:
            state = self._migrate_legacy()

        raw_settings = self._blob_store.get(self._settings.settings_key)
        if raw_settings is not None:
            try:
                self._user_settings = UserSettings.model_validate_json(raw_settings)
            except ValueError as e:
                logger.error("settings_blob_corrupt", error=str(e))

        self._state = state
        self._notify()
        self._audit(AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            description=f"Loaded {len(state.budgets)} budget(s), {len(state.assets)} asset(s)",
            details={
                "budgets": len(state.budgets),
                "assets": len(state.assets),
                "liabilities": len(state.liabilities),
            },
        ))
        return state

    def _migrate_legacy(self) -> AppState:
        legacy = self._blob_store.get(self._settings.legacy_budgets_key)
        if legacy is None:
            return AppState()

        active_id = self._blob_store.get(self._settings.legacy_active_id_key)
        try:
            state = load_legacy_budgets(legacy, active_id)
        except ValueError as e:
            logger.error("legacy_blob_corrupt", error=str(e))
            self._audit_logger.log_error("legacy_blob_corrupt", str(e))
            return AppState()

        if self._persist(self._settings.data_key, dump_state(state)):
            try:
                self._blob_store.remove(self._settings.legacy_budgets_key)
                self._blob_store.remove(self._settings.legacy_active_id_key)
            except StorageError as e:
                logger.warning("legacy_cleanup_failed", error=str(e))

        self._audit(AuditEventBuilder.state_migrated(
            source=self._settings.legacy_budgets_key,
            budgets=len(state.budgets),
            assets=len(state.assets),
        ))
        return state

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def _require_active_budget(self) -> Budget:
        budget = self._state.active_budget
        if budget is None:
            raise NotFoundError("budget", self._state.active_budget_id or "<no active budget>")
        return budget

    def save_budget(
        self,
        budget_input: BudgetInput,
        editing_id: Optional[str] = None,
    ) -> Budget:
        """Create or edit a budget; the saved budget becomes active."""
        new_state = create_or_update_budget(
            self._state, budget_input, editing_id, validator=self._validator
        )
        saved = new_state.active_budget
        self._commit(new_state, AuditEventBuilder.budget_saved(
            saved.id, saved.name, created=editing_id is None
        ))
        return saved

    def copy_budget(self, budget_id: str) -> BudgetInput:
        """Draft a copy of a budget for the editor. Nothing is saved."""
        source = self._state.find_budget(budget_id)
        if source is None:
            raise NotFoundError("budget", budget_id)
        return copy_budget(source, year=self._today().year)

    def delete_budget(self, budget_id: str) -> AppState:
        new_state = delete_budget(self._state, budget_id)
        return self._commit(new_state, AuditEventBuilder.budget_deleted(
            budget_id, new_state.active_budget_id
        ))

    def set_active_budget(self, budget_id: str) -> AppState:
        new_state = set_active_budget(self._state, budget_id)
        if new_state.active_budget_id == self._state.active_budget_id:
            return self._state
        return self._commit(new_state, AuditEventBuilder.entity_changed(
            AuditEventType.ACTIVE_BUDGET_CHANGED, "budget", budget_id,
            "Active budget changed",
        ))

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def add_expenses(
        self,
        records: Iterable[IncomingExpense],
        correlation_id: Optional[UUID] = None,
    ) -> ImportReport:
        """
        Import expenses into the active budget.

        Returns the ImportReport; skipped records are reported, not raised.
        """
        budget = self._require_active_budget()
        result = import_expenses(budget, records)
        report = result.report

        if report.added or report.created_categories:
            self._commit(
                self._state.replace_budget(result.budget),
                AuditEventBuilder.expenses_imported(
                    budget.id, report.added, report.created_categories, correlation_id
                ),
            )
        if report.has_warnings:
            self._audit(AuditEventBuilder.expenses_skipped(
                budget.id, report.skipped_by_year, report.dropped_unresolved,
                dropped_invalid=report.dropped_invalid, correlation_id=correlation_id,
            ))
        return report

    def add_expense(self, expense: IncomingExpense) -> ImportReport:
        """Validate and add one manually entered expense."""
        raise_for_errors(self._validator.validate_expense(expense))
        return self.add_expenses([expense])

    def _commit_budget(self, updated: Budget, event: AuditEvent) -> Budget:
        budget = self._require_active_budget()
        if updated is budget:
            return budget
        self._commit(self._state.replace_budget(updated), event)
        return updated

    def update_expense(self, expense: Expense) -> Budget:
        budget = self._require_active_budget()
        return self._commit_budget(
            update_expense(budget, expense),
            AuditEventBuilder.entity_changed(
                AuditEventType.EXPENSE_UPDATED, "expense", expense.id,
                f"Expense updated: {expense.name}",
            ),
        )

    def delete_expense(self, expense_id: str) -> Budget:
        budget = self._require_active_budget()
        return self._commit_budget(
            delete_expense(budget, expense_id),
            AuditEventBuilder.entity_changed(
                AuditEventType.EXPENSES_DELETED, "expense", expense_id,
                "Expense deleted",
            ),
        )

    def delete_expenses(self, expense_ids: Iterable[str]) -> Budget:
        ids = set(expense_ids)
        budget = self._require_active_budget()
        return self._commit_budget(
            delete_expenses(budget, ids),
            AuditEventBuilder.entity_changed(
                AuditEventType.EXPENSES_DELETED, "budget", budget.id,
                f"{len(ids)} expense(s) deleted",
                {"expense_ids": sorted(ids)},
            ),
        )

    def recategorize_expenses(
        self,
        expense_ids: Iterable[str],
        new_category_id: str,
    ) -> Budget:
        ids = set(expense_ids)
        budget = self._require_active_budget()
        return self._commit_budget(
            recategorize(budget, ids, new_category_id),
            AuditEventBuilder.entity_changed(
                AuditEventType.EXPENSES_RECATEGORIZED, "budget", budget.id,
                f"{len(ids)} expense(s) moved to another category",
                {"expense_ids": sorted(ids), "category_id": new_category_id},
            ),
        )

    def delete_expenses_in_view(self, view_month: int) -> Budget:
        budget = self._require_active_budget()
        return self._commit_budget(
            delete_expenses_in_view(budget, view_month),
            AuditEventBuilder.entity_changed(
                AuditEventType.EXPENSES_DELETED, "budget", budget.id,
                "Expenses in view deleted",
                {"view_month": view_month},
            ),
        )

    # =========================================================================
    # ASSETS, HOLDINGS, LIABILITIES
    # =========================================================================

    def _commit_with_net_worth(self, new_state: AppState, event: AuditEvent) -> AppState:
        """Commit an asset-side change together with today's net-worth snapshot."""
        history = update_history(
            new_state.net_worth_history,
            new_state.assets,
            new_state.liabilities,
            self._today(),
            precision=self._settings.net_worth_precision,
        )
        if history is not new_state.net_worth_history:
            new_state = new_state.model_copy(update={"net_worth_history": history})
            latest = history[-1]
            self._audit(AuditEventBuilder.net_worth_recorded(latest.date, latest.net_worth))
        return self._commit(new_state, event)

    def save_asset(self, asset_input: AssetInput, editing_id: Optional[str] = None) -> AppState:
        assets = create_or_update_asset(
            self._state.assets, asset_input, editing_id, validator=self._validator
        )
        saved_id = editing_id or assets[-1].id
        return self._commit_with_net_worth(
            self._state.model_copy(update={"assets": assets}),
            AuditEventBuilder.entity_changed(
                AuditEventType.ASSET_SAVED, "asset", saved_id,
                f"Asset saved: {asset_input.name}",
                {"type": asset_input.type},
            ),
        )

    def delete_asset(self, asset_id: str) -> AppState:
        return self._commit_with_net_worth(
            self._state.model_copy(update={
                "assets": delete_asset(self._state.assets, asset_id),
            }),
            AuditEventBuilder.entity_changed(
                AuditEventType.ASSET_DELETED, "asset", asset_id, "Asset deleted",
            ),
        )

    def save_holding(
        self,
        holding_input: HoldingInput,
        target_asset_id: Optional[str] = None,
        editing_holding_id: Optional[str] = None,
    ) -> AppState:
        assets = add_or_update_holding(
            self._state.assets,
            holding_input,
            target_asset_id=target_asset_id,
            editing_holding_id=editing_holding_id,
            validator=self._validator,
        )
        return self._commit_with_net_worth(
            self._state.model_copy(update={"assets": assets}),
            AuditEventBuilder.entity_changed(
                AuditEventType.HOLDING_SAVED, "holding", editing_holding_id,
                f"Holding saved: {holding_input.ticker.strip().upper()}",
                {"asset_id": target_asset_id},
            ),
        )

    def delete_holding(self, asset_id: str, holding_id: str) -> AppState:
        return self._commit_with_net_worth(
            self._state.model_copy(update={
                "assets": delete_holding(self._state.assets, asset_id, holding_id),
            }),
            AuditEventBuilder.entity_changed(
                AuditEventType.HOLDING_DELETED, "holding", holding_id,
                "Holding deleted", {"asset_id": asset_id},
            ),
        )

    def save_liability(
        self,
        liability_input: LiabilityInput,
        editing_id: Optional[str] = None,
    ) -> AppState:
        liabilities = create_or_update_liability(
            self._state.liabilities, liability_input, editing_id, validator=self._validator
        )
        saved_id = editing_id or liabilities[-1].id
        return self._commit_with_net_worth(
            self._state.model_copy(update={"liabilities": liabilities}),
            AuditEventBuilder.entity_changed(
                AuditEventType.LIABILITY_SAVED, "liability", saved_id,
                f"Liability saved: {liability_input.name}",
            ),
        )

    def delete_liability(self, liability_id: str) -> AppState:
        return self._commit_with_net_worth(
            self._state.model_copy(update={
                "liabilities": delete_liability(self._state.liabilities, liability_id),
            }),
            AuditEventBuilder.entity_changed(
                AuditEventType.LIABILITY_DELETED, "liability", liability_id,
                "Liability deleted",
            ),
        )

    def held_tickers(self) -> list[str]:
        """Distinct upper-cased tickers across all accounts, in first-seen order."""
        tickers: list[str] = []
        for asset in self._state.assets:
            for holding in getattr(asset, "holdings", []):
                ticker = holding.ticker.upper()
                if ticker not in tickers:
                    tickers.append(ticker)
        return tickers

    async def refresh_quotes(
        self,
        quote_service: Optional[AlphaVantageQuoteService] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> AppState:
        """
        Fetch current prices for every held ticker and merge them in.

        The merge is applied to the state as it is when the fetch finishes,
        keyed by ticker, so edits made during a slow refresh are kept.

        Raises:
            QuoteServiceError: No API key is configured
        """
        tickers = self.held_tickers()
        if not tickers:
            return self._state

        service = quote_service or AlphaVantageQuoteService(
            api_key=self._user_settings.alpha_vantage_api_key
        )
        try:
            quotes = await service.fetch_multiple_quotes(tickers, on_progress)
        except QuoteServiceError as e:
            self._audit_logger.log_external_service_error("alpha_vantage", str(e))
            raise

        prices = {ticker: quote.price for ticker, quote in quotes.items()}
        event = AuditEventBuilder.quotes_refreshed(
            requested=len(tickers),
            received=len(quotes),
            holdings_updated=count_quoted_holdings(self._state.assets, prices),
        )
        if not prices:
            self._audit(event)
            return self._state

        return self._commit_with_net_worth(
            self._state.model_copy(update={
                "assets": apply_quote_refresh(self._state.assets, prices),
            }),
            event,
        )

    # =========================================================================
    # SETTINGS, EXPORT, IMPORT
    # =========================================================================

    def update_settings(self, settings: UserSettings) -> UserSettings:
        self._user_settings = settings
        self._persist(self._settings.settings_key, settings.model_dump_json(by_alias=True))
        self._audit(AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            description="User settings updated",
            details={"currency_symbol": settings.currency_symbol},
            is_user_action=True,
        ))
        return settings

    def export_data(self) -> str:
        """Pretty-printed JSON of everything, for the user to download."""
        exported = build_export(self._state, self._user_settings)
        self._audit(AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            description="Data exported",
            details={"size": len(exported)},
            is_user_action=True,
        ))
        return exported

    def import_data(self, text: str, confirm: Callable[[str], bool]) -> bool:
        """
        Replace everything with the contents of an export file.

        The file is fully validated first; confirm(message) is then asked
        and the state is only replaced if it returns True.

        Returns:
            True if the data was replaced

        Raises:
            DataImportError: The file is invalid (nothing was changed)
        """
        try:
            state, settings = parse_export(text)
        except DataImportError as e:
            self._audit(AuditEventBuilder.data_import_rejected(str(e)))
            raise

        if not confirm(IMPORT_CONFIRMATION):
            return False

        if settings is not None:
            self.update_settings(settings)
        self._commit(state, AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            description=f"Imported {len(state.budgets)} budget(s), {len(state.assets)} asset(s)",
            details={
                "budgets": len(state.budgets),
                "assets": len(state.assets),
                "liabilities": len(state.liabilities),
            },
            is_user_action=True,
        ))
        return True

    # =========================================================================
    # AI FLOWS
    # =========================================================================

    async def import_expenses_from_csv(
        self,
        csv_content: str,
        parser: Optional[CsvExpenseParser] = None,
    ) -> ImportReport:
        """
        Parse a CSV export with the AI parser and import the result.

        The parse and the import share one correlation id in the audit log.

        Raises:
            NotFoundError: No active budget
            AIServiceError: The parse failed (state unchanged)
        """
        budget = self._require_active_budget()
        correlation_id = create_correlation_id()
        parser = parser or CsvExpenseParser(today=self._today)

        try:
            records = await parser.parse(csv_content, [c.name for c in budget.categories])
        except AIServiceError as e:
            self._audit_logger.log_external_service_error("gemini", str(e), correlation_id)
            raise
        self._audit(AuditEventBuilder.csv_parsed(len(records), correlation_id))

        return self.add_expenses(records, correlation_id=correlation_id)

    async def ask_advisor(
        self,
        query: str,
        page: str,
        advisor: Optional[FinancialAdvisorAgent] = None,
    ) -> str:
        """Ask the AI advisor about the current budgets, assets and liabilities."""
        advisor = advisor or FinancialAdvisorAgent()
        correlation_id = create_correlation_id()
        try:
            answer = await advisor.get_advice(
                query,
                page,
                self._state.budgets,
                self._state.assets,
                self._state.liabilities,
            )
        except AIServiceError as e:
            self._audit_logger.log_external_service_error("gemini", str(e), correlation_id)
            raise
        self._audit(AuditEventBuilder.advice_generated(page, len(query), correlation_id))
        return answer
