"""HTML bodies for receipt and reminder emails. All interpolated values are escaped."""

from dataclasses import dataclass
from decimal import Decimal
from html import escape
from typing import Optional

DEFAULT_PRIMARY_COLOR = "#1e3a5f"
ACCENT_COLOR = "#d4a84b"
WARNING_COLOR = "#d97706"


@dataclass
class SchoolProfile:
    name: str
    address: str = ""
    phone: str = ""
    email: str = ""
    primary_color: Optional[str] = None
    logo_url: Optional[str] = None


@dataclass
class ReceiptContext:
    student_name: str
    admission_number: str
    class_name: str
    fee_type: str
    amount: Decimal
    payment_method: str
    payment_date: str
    receipt_number: str
    session: str
    term: str


@dataclass
class ReminderContext:
    student_name: str
    admission_number: str
    class_name: str
    fee_type: str
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    session: str
    term: str


def format_naira(amount: Decimal) -> str:
    return f"₦{amount:,.2f}"


def _header(school: SchoolProfile) -> str:
    color = escape(school.primary_color or DEFAULT_PRIMARY_COLOR)
    logo = (
        f'<img src="{escape(school.logo_url)}" alt="{escape(school.name)}" style="max-height: 60px; margin-bottom: 15px;">'
        if school.logo_url
        else ""
    )
    address = (
        f'<p style="color: rgba(255,255,255,0.9); margin: 8px 0 0; font-size: 14px;">{escape(school.address)}</p>'
        if school.address
        else ""
    )
    return (
        f'<tr><td style="background-color: {color}; padding: 30px; text-align: center;">'
        f"{logo}"
        f'<h1 style="color: #ffffff; margin: 0; font-size: 24px;">{escape(school.name)}</h1>'
        f"{address}"
        "</td></tr>"
    )


def _row(label: str, value: str) -> str:
    return (
        '<tr><td style="padding: 8px 0; border-bottom: 1px solid #eee;">'
        f"<strong>{escape(label)}:</strong> {escape(value)}"
        "</td></tr>"
    )


def _wrap(title: str, rows: str) -> str:
    return (
        "<!DOCTYPE html><html><head>"
        '<meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0">'
        f"<title>{escape(title)}</title></head>"
        "<body style=\"margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f5f5f5;\">"
        '<table width="100%" cellpadding="0" cellspacing="0" style="max-width: 600px; margin: 0 auto; background-color: #ffffff;">'
        f"{rows}"
        "</table></body></html>"
    )


def render_receipt_html(school: SchoolProfile, receipt: ReceiptContext) -> str:
    color = escape(school.primary_color or DEFAULT_PRIMARY_COLOR)
    details = "".join(
        [
            _row("Student", receipt.student_name),
            _row("Admission No", receipt.admission_number),
            _row("Class", receipt.class_name),
            _row("Fee Type", receipt.fee_type),
            _row("Session/Term", f"{receipt.session} - {receipt.term}"),
            _row("Payment Method", receipt.payment_method),
            _row("Payment Date", receipt.payment_date),
        ]
    )
    rows = (
        _header(school)
        + f'<tr><td style="padding: 25px 30px; text-align: center; border-bottom: 2px solid {ACCENT_COLOR};">'
        f'<h2 style="margin: 0; color: {color}; font-size: 20px;">PAYMENT RECEIPT</h2>'
        f'<p style="margin: 10px 0 0; color: #666; font-size: 14px;">Receipt No: <strong>{escape(receipt.receipt_number)}</strong></p>'
        "</td></tr>"
        '<tr><td style="padding: 25px 30px;"><table width="100%" cellpadding="0" cellspacing="0">'
        f"{details}"
        '<tr><td style="padding: 15px 0;"><strong>Amount Paid:</strong> '
        f'<span style="color: #0a7b0a; font-size: 20px; font-weight: bold;">{escape(format_naira(receipt.amount))}</span>'
        "</td></tr></table></td></tr>"
        '<tr><td style="padding: 20px 30px; background-color: #f8f9fa; text-align: center;">'
        '<p style="color: #888; font-size: 13px; font-style: italic; margin: 0;">This is a computer-generated receipt.</p>'
        '<p style="color: #666; font-size: 14px; margin: 10px 0 0;">Thank you for your payment!</p>'
        "</td></tr>"
    )
    return _wrap("Payment Receipt", rows)


def render_reminder_html(school: SchoolProfile, reminder: ReminderContext) -> str:
    term = reminder.term[:1].upper() + reminder.term[1:]
    details = "".join(
        [
            _row("Student Name", reminder.student_name),
            _row("Admission No", reminder.admission_number),
            _row("Class", reminder.class_name),
            _row("Session/Term", f"{reminder.session} - {term} Term"),
        ]
    )
    summary = "".join(
        [
            _row("Total Amount Due", format_naira(reminder.total_amount)),
            _row("Amount Paid", format_naira(reminder.amount_paid)),
            _row("Outstanding Balance", format_naira(reminder.balance)),
        ]
    )
    contact = " | ".join(
        part for part in (
            f"Tel: {school.phone}" if school.phone else "",
            f"Email: {school.email}" if school.email else "",
        ) if part
    )
    rows = (
        _header(school)
        + f'<tr><td style="padding: 20px 30px; background-color: #fef3c7; border-left: 4px solid {WARNING_COLOR};">'
        f'<h2 style="margin: 0; color: {WARNING_COLOR}; font-size: 18px;">Fee Payment Reminder</h2>'
        '<p style="margin: 8px 0 0; color: #92400e; font-size: 14px;">This is a friendly reminder about outstanding school fees.</p>'
        "</td></tr>"
        '<tr><td style="padding: 25px 30px;">'
        '<p style="margin: 0 0 20px; color: #333; font-size: 15px;">Dear Parent/Guardian,</p>'
        '<p style="margin: 0 0 20px; color: #555; font-size: 14px;">'
        "There is an outstanding balance on your child's school fees account.</p>"
        f'<table width="100%" cellpadding="0" cellspacing="0">{details}</table>'
        "</td></tr>"
        '<tr><td style="padding: 0 30px 25px;">'
        f'<h3 style="margin: 0 0 15px; color: {WARNING_COLOR}; font-size: 16px;">Payment Summary - {escape(reminder.fee_type)}</h3>'
        f'<table width="100%" cellpadding="0" cellspacing="0">{summary}</table>'
        "</td></tr>"
        '<tr><td style="padding: 0 30px 25px; text-align: center; color: #555; font-size: 14px;">'
        "<p>Please make arrangements to clear the outstanding balance at your earliest convenience.</p>"
        "<p>If you have already made the payment, please disregard this reminder.</p>"
        "</td></tr>"
        '<tr><td style="padding: 20px 30px; background-color: #f8f9fa; text-align: center; color: #666; font-size: 13px;">'
        f"{escape(contact)}"
        f'<p style="color: #888; font-size: 12px;">This is an automated reminder from {escape(school.name)}.</p>'
        "</td></tr>"
    )
    return _wrap("Fee Payment Reminder", rows)
