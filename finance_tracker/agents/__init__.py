"""AI Agents package."""

from finance_tracker.agents.ai_agents import (
    AIServiceError,
    CsvExpenseParser,
    FinancialAdvisorAgent,
    page_context_instruction,
)

__all__ = [
    "AIServiceError",
    "CsvExpenseParser",
    "FinancialAdvisorAgent",
    "page_context_instruction",
]
