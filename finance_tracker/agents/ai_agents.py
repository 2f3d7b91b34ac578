"""
AI Agents for the Finance Tracker

DESIGN DECISION: Both agents talk to Gemini through google-generativeai
and are stateless per call. Neither one ever touches the application
state; they take plain data in and hand plain data back to the store.

CRITICAL BOUNDARIES:

1. CSV EXPENSE PARSER:
   - CAN: Read an arbitrary bank/card CSV export and pick the columns
   - CAN: Suggest a category name (existing, new, or "Other")
   - CANNOT: Assign category ids (the importer resolves names)
   - CANNOT: Decide which year a record belongs to (the importer does)

2. FINANCIAL ADVISOR:
   - CAN: Comment on the budgets, assets and liabilities it is given
   - CANNOT: Recommend specific securities
   - MUST: Close every answer with a not-a-licensed-advisor disclaimer

The LLM is a TRANSLATOR, not an ORACLE. The parser output goes through
the same validation and import rules as manually entered expenses.
"""

import json
from datetime import date
from typing import Any, Callable, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.config import get_settings
from finance_tracker.config.settings import GeminiSettings
from finance_tracker.models.finance import (
    Asset,
    Budget,
    IncomingExpense,
    Liability,
    parse_iso_datetime,
)


logger = structlog.get_logger(__name__)


class AIServiceError(Exception):
    """The AI call failed or returned something we cannot use."""
    pass


def _extract_json(text: str) -> Any:
    """Pull the outermost JSON object out of a model response."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in model response")
    return json.loads(text[start:end])


# =============================================================================
# CSV EXPENSE PARSER
# =============================================================================

class ParsedExpense(BaseModel):
    """One transaction as the model reports it, before normalization."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    amount: float
    date: Optional[str] = None
    category_name: Optional[str] = Field(default=None, alias="categoryName")


class CsvExpenseParser:
    """
    Turns raw CSV text into expenses ready for the importer.

    RESPONSIBILITIES:
    - Find date, description and amount whatever the column layout
    - Force amounts positive (debit/credit columns vary by bank)
    - Fill missing or unreadable dates with today's date
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            settings: Gemini configuration. Loaded from env if None.
            model: Anything with an async generate_content_async(prompt).
                   Built from settings if None.
            today: Date used for rows without a date.
        """
        self._today = today
        if model is not None:
            self._model = model
        else:
            self._settings = settings or get_settings().gemini
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.parse_temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    def build_prompt(self, csv_content: str, category_names: list[str]) -> str:
        names = ", ".join(category_names)
        today = self._today()
        return f"""Parse the following CSV data which represents a list of financial transactions.
The CSV may or may not have headers, and columns for date, description, and amount might be in any order.
Identify the date, a description/name for the transaction, and the amount.
For each transaction, assign it to the most relevant category from the provided list: {names}.
- If a transaction fits well into an existing category, use that category name exactly as provided.
- If a transaction represents a common expense type but doesn't fit any existing category (e.g., a new 'Subscription' or 'Pet Supplies' expense), create a logical, new category name for it.
- If you are truly unsure or the transaction is ambiguous, assign it to the category "Other".
Today is {today.strftime('%a %b %d %Y')}. Use this for any transactions that lack a specific date.
The amount might be in a credit/debit column; treat all numbers as positive expense amounts.

Respond with ONLY a JSON object in this exact format:
{{"expenses": [{{"name": "Starbucks", "amount": 4.5, "date": "YYYY-MM-DD", "categoryName": "Dining"}}]}}

Category List: {names}

CSV Data:
\"\"\"
{csv_content}
\"\"\""""

    def _normalize(self, item: ParsedExpense) -> IncomingExpense:
        expense_date = self._today().isoformat()
        if item.date:
            try:
                parse_iso_datetime(item.date)
                expense_date = item.date.strip()
            except ValueError:
                pass
        return IncomingExpense(
            name=item.name,
            amount=abs(item.amount),
            date=expense_date,
            category_name=item.category_name,
        )

    async def parse(
        self,
        csv_content: str,
        category_names: list[str],
    ) -> list[IncomingExpense]:
        """
        Parse CSV text into named (not yet resolved) expenses.

        Rows the model returns in an unusable shape are skipped and logged.

        Raises:
            AIServiceError: The model call failed or the response was not JSON
        """
        if not csv_content.strip():
            return []

        prompt = self.build_prompt(csv_content, category_names)
        try:
            response = await self._model.generate_content_async(prompt)
            data = _extract_json(response.text.strip())
        except Exception as e:
            logger.error("csv_parse_failed", error=str(e))
            raise AIServiceError(
                "Failed to parse CSV. The AI model might be unavailable "
                "or the file format was unclear."
            ) from e

        raw_items = data.get("expenses") if isinstance(data, dict) else None
        if not isinstance(raw_items, list):
            return []

        expenses = []
        for raw in raw_items:
            try:
                expenses.append(self._normalize(ParsedExpense.model_validate(raw)))
            except ValueError as e:
                logger.warning("csv_row_unusable", row=str(raw)[:200], error=str(e))

        logger.info("csv_parsed", rows=len(expenses), returned=len(raw_items))
        return expenses


# =============================================================================
# FINANCIAL ADVISOR
# =============================================================================

ADVISOR_SYSTEM_INSTRUCTION = (
    "You are a helpful and friendly AI financial assistant. Your goal is to "
    "provide insightful recommendations based on the user's financial data. "
    "You are NOT a licensed financial advisor, and your advice should be "
    "considered for informational purposes only. Always include a disclaimer "
    "to this effect at the end of your response. Base your analysis strictly "
    "on the data provided. Be encouraging and clear in your recommendations. "
    "Use markdown for formatting lists and bolding key points."
)

PAGE_CONTEXT_INSTRUCTIONS = {
    "dashboard": (
        "The user is on the main dashboard. Provide a holistic overview of their "
        "financial health. Analyze their net worth (assets vs. liabilities) and "
        "their annual budget performance. Suggest 2-3 high-level, actionable "
        "steps they could take to improve their financial situation."
    ),
    "budgets": (
        "The user is viewing their budget. Analyze their spending habits based "
        "on the provided budget data. Identify categories where they are "
        "overspending or where there are potential savings. Offer specific, "
        "practical tips for reducing expenses in those categories."
    ),
    "assets": (
        "The user is on the assets page. Review their list of assets. Based on "
        "their holdings and asset types, suggest potential areas for "
        "diversification or growth. IMPORTANT: Do not give specific stock picks "
        "(e.g., \"buy AAPL\"). Instead, suggest general strategies (e.g., "
        "\"Consider diversifying into international ETFs\")."
    ),
}

DEFAULT_PAGE_CONTEXT = (
    "Provide general financial advice based on the user's query and their "
    "overall financial data."
)


def page_context_instruction(page: str) -> str:
    return PAGE_CONTEXT_INSTRUCTIONS.get(page, DEFAULT_PAGE_CONTEXT)


def _to_json(items: list[BaseModel]) -> str:
    return json.dumps(
        [item.model_dump(mode="json", by_alias=True) for item in items],
        indent=2,
    )


class FinancialAdvisorAgent:
    """
    Answers free-form questions about the user's finances.

    Stateless: the caller keeps the conversation history and sends the
    current budgets, assets and liabilities with every question.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        if model is not None:
            self._model = model
        else:
            self._settings = settings or get_settings().gemini
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=ADVISOR_SYSTEM_INSTRUCTION,
            generation_config={
                "temperature": self._settings.advice_temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    def build_prompt(
        self,
        query: str,
        page: str,
        budgets: list[Budget],
        assets: list[Asset],
        liabilities: list[Liability],
    ) -> str:
        return f"""A user is asking for financial advice. Here is their financial data:

**Budgets:**
```json
{_to_json(budgets)}
```

**Assets:**
```json
{_to_json(assets)}
```

**Liabilities:**
```json
{_to_json(liabilities)}
```

---

**Context:** {page_context_instruction(page)}

**User's Query:** "{query}"

Please provide a helpful response based on the instructions."""

    async def get_advice(
        self,
        query: str,
        page: str,
        budgets: list[Budget],
        assets: list[Asset],
        liabilities: list[Liability],
    ) -> str:
        """
        Ask the advisor one question.

        Raises:
            ValueError: Empty question
            AIServiceError: The model call failed
        """
        if not query.strip():
            raise ValueError("Please enter a question")

        prompt = self.build_prompt(query, page, budgets, assets, liabilities)
        try:
            response = await self._model.generate_content_async(prompt)
            return response.text.strip()
        except Exception as e:
            logger.error("advice_failed", page=page, error=str(e))
            raise AIServiceError(
                "The AI assistant is currently unavailable. Please try again later."
            ) from e
