"""Application layer - DTOs."""

from app.application.dto.balance_dto import (
    BalanceResponseDTO,
    BatchResultDTO,
    RecalculationFailureDTO,
)
from app.application.dto.report_dto import (
    BalanceSheetDTO,
    CashFlowSummaryDTO,
    DashboardDTO,
    DebtAgingDTO,
    FinancialSummaryDTO,
    InventorySummaryDTO,
    PresetRangeDTO,
    ProfitLossDTO,
    SalesSummaryDTO,
)
