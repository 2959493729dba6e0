# Overview: AI-written receipt and sales-insight text built from structured prompts.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..config import BusinessProfile
from ..models import DailySaleRecord
from ..time_utils import localnow
from .text_service import Err, TextResult

RECEIPT_TEMPERATURE = 0.2
INSIGHTS_TEMPERATURE = 0.5
MIN_INSIGHT_DAYS = 3


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    quantity: float
    price: float


@dataclass(frozen=True)
class DeliveryDetails:
    address: str
    cost: float


def _money(profile: BusinessProfile, amount: float) -> str:
    return f"{profile.currency}{amount:.2f}"


def build_receipt_prompt(
    lines: Iterable[ReceiptLine],
    profile: BusinessProfile,
    customer_name: str,
    delivery: Optional[DeliveryDetails] = None,
    now: Optional[datetime] = None,
) -> str:
    now = now or localnow()
    lines = list(lines)

    items_list = "\n".join(
        f"- {line.name} (Qty: {line.quantity:g}, Price: {_money(profile, line.price)} each)"
        for line in lines
    )
    subtotal = sum(line.price * line.quantity for line in lines)
    tax_amount = subtotal * profile.tax_rate / 100
    delivery_cost = delivery.cost if delivery else 0
    total = subtotal + tax_amount + delivery_cost

    delivery_section = ""
    delivery_fee_line = ""
    if delivery:
        delivery_section = (
            "\nDelivery Information:\n"
            f"- Deliver to: {customer_name}\n"
            f"- Address: {delivery.address}\n"
            f"- Delivery Fee: {_money(profile, delivery.cost)}\n"
        )
        delivery_fee_line = f"Delivery Fee: {_money(profile, delivery.cost)}\n"

    return (
        "Generate a professional customer receipt with the following details. "
        "Do not include any introductory or concluding remarks, just the receipt text itself.\n\n"
        f"Business Name: {profile.name}\n"
        f"Business Address: {profile.address}\n"
        f"Date: {now.strftime('%Y-%m-%d')}\n"
        f"Time: {now.strftime('%H:%M:%S')}\n\n"
        f"Customer Name: {customer_name or 'Valued Customer'}\n\n"
        "Items Purchased:\n"
        f"{items_list}\n"
        f"{delivery_section}"
        "-----------------------------------\n"
        f"Subtotal: {_money(profile, subtotal)}\n"
        f"Tax ({profile.tax_rate:g}%): {_money(profile, tax_amount)}\n"
        f"{delivery_fee_line}"
        "-----------------------------------\n"
        f"Total: {_money(profile, total)}\n\n"
        "Thank you for your business!\n"
    )


def build_insights_prompt(records: Iterable[DailySaleRecord], profile: BusinessProfile) -> str:
    csv_rows = "\n".join(f"{r.date},{r.revenue:g},{r.transactions}" for r in records)
    return (
        f'You are a business sales analyst for a company named "{profile.name}". '
        f"The currency used is {profile.currency}.\n"
        "Based on the following daily sales data in CSV format, provide some actionable insights.\n\n"
        "Analyze the data and identify:\n"
        "- Key trends (e.g., is revenue increasing or decreasing?).\n"
        "- Busiest days or periods.\n"
        "- Potential areas for growth or concern.\n"
        "- The average revenue per day.\n\n"
        "Format your response clearly, using headings and bullet points. Be concise and direct. "
        "Do not include any introductory or concluding remarks, just the analysis.\n\n"
        "Sales Data:\n"
        "Date,Revenue,Transactions\n"
        f"{csv_rows}\n"
    )


class ReceiptTextService:
    def __init__(self, client, profile: BusinessProfile):
        self.client = client
        self.profile = profile

    def generate_receipt(
        self,
        lines: Iterable[ReceiptLine],
        customer_name: str = "",
        delivery: Optional[DeliveryDetails] = None,
    ) -> TextResult:
        prompt = build_receipt_prompt(lines, self.profile, customer_name, delivery)
        return self.client.generate(
            prompt,
            temperature=RECEIPT_TEMPERATURE,
            offline_message="Error: You are offline. Please connect to the internet to generate AI receipts.",
        )

    def generate_sales_insights(self, records: list[DailySaleRecord]) -> TextResult:
        if len(records) < MIN_INSIGHT_DAYS:
            return Err("Not enough data to generate insights. Please record at least 3 days of sales.")
        prompt = build_insights_prompt(records, self.profile)
        return self.client.generate(
            prompt,
            temperature=INSIGHTS_TEMPERATURE,
            offline_message="Error: You are offline. Please connect to the internet to generate AI insights.",
        )
