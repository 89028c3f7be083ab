import io

import openpyxl
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side

from luckypaws.schemas import ProfitLossSummary

HEADERS = ["Username", "Total Deposit", "Total Cashout", "Net", "Profit Margin %"]


def generate_profit_loss_workbook(summary: ProfitLossSummary) -> io.BytesIO:
    wb = openpyxl.Workbook()

    # Styles
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
    center_align = Alignment(horizontal="center", vertical="center")
    thin_border = Border(left=Side(style='thin'), right=Side(style='thin'),
                         top=Side(style='thin'), bottom=Side(style='thin'))

    def style_header(ws, headers):
        ws.append(headers)
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = center_align
            cell.border = thin_border

    # Sheet 1: per customer
    ws1 = wb.active
    ws1.title = "By Customer"
    style_header(ws1, HEADERS)
    ws1.column_dimensions['A'].width = 24
    for user in summary.users:
        ws1.append([
            user.username,
            float(user.total_deposit),
            float(user.total_cashout),
            float(user.net),
            float(user.profit_margin),
        ])

    # Sheet 2: totals
    ws2 = wb.create_sheet("Summary")
    ws2.column_dimensions['A'].width = 20
    ws2.column_dimensions['B'].width = 15
    totals = summary.totals
    summary_data = [
        ("From", summary.from_date.isoformat()),
        ("To", summary.to_date.isoformat()),
        ("Customers", len(summary.users)),
        ("Total Deposit", float(totals.total_deposit)),
        ("Total Cashout", float(totals.total_cashout)),
        ("Net", float(totals.net)),
        ("Profit Margin %", float(totals.profit_margin)),
    ]
    for row in summary_data:
        ws2.append(row)

    # Save to BytesIO
    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output
