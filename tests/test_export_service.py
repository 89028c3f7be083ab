from datetime import date
from decimal import Decimal

import openpyxl

from luckypaws.schemas import ProfitLossSummary, SummaryTotals, UserSummary
from luckypaws.services.export_service import HEADERS, generate_profit_loss_workbook


def test_workbook_layout():
    summary = ProfitLossSummary(
        from_date=date(2024, 1, 1),
        to_date=date(2024, 1, 31),
        users=[
            UserSummary(username="alice", total_deposit=Decimal("50"), total_cashout=Decimal("20"),
                        net=Decimal("30"), profit_margin=Decimal("60.00")),
            UserSummary(username="Bob", total_deposit=Decimal("0"), total_cashout=Decimal("15"),
                        net=Decimal("-15"), profit_margin=Decimal("0")),
        ],
        totals=SummaryTotals(total_deposit=Decimal("50"), total_cashout=Decimal("35"),
                             net=Decimal("15"), profit_margin=Decimal("30.00")),
    )

    wb = openpyxl.load_workbook(generate_profit_loss_workbook(summary))

    assert wb.sheetnames == ["By Customer", "Summary"]
    rows = list(wb["By Customer"].iter_rows(values_only=True))
    assert list(rows[0]) == HEADERS
    assert rows[1] == ("alice", 50, 20, 30, 60)
    assert rows[2] == ("Bob", 0, 15, -15, 0)

    totals = dict(wb["Summary"].iter_rows(values_only=True))
    assert totals["From"] == "2024-01-01"
    assert totals["Customers"] == 2
    assert totals["Net"] == 15
    assert totals["Profit Margin %"] == 30
