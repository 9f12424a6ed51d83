"""
WhatsApp sharing.

WHAT: Format tasks and assets as WhatsApp messages and build share links,
deep links back into the web app and QR-code image URLs.

WHY: Field technicians hand work over in chat. The message is built on the
server so every client shares the same text and the same deep links.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from urllib.parse import quote

from assetdesk.core.config import settings
from assetdesk.core.exceptions import ValidationError
from assetdesk.services.task_service import total_cost

WA_ME_URL = "https://wa.me/"
WEB_SEND_URL = "https://web.whatsapp.com/send"
MOBILE_SEND_URL = "whatsapp://send"
QR_CODE_URL = "https://api.qrserver.com/v1/create-qr-code/"

STATUS_EMOJIS = {
    "PENDING": "⏳",
    "IN_PROGRESS": "🔄",
    "COMPLETED": "✅",
    "CANCELLED": "❌",
}

PRIORITY_EMOJIS = {
    "LOW": "🔵",
    "MEDIUM": "🟡",
    "HIGH": "🟠",
    "URGENT": "🔴",
}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "BRL": "R$",
    "CAD": "CA$",
    "AUD": "A$",
}

FOOTER = "📱 Shared from Asset Management System"
MAX_METADATA_SPECS = 5


def format_currency(amount: Any, currency: Optional[str]) -> str:
    """``$1,234.50`` for known symbols, ``CHF 1,234.50`` otherwise."""
    currency = (currency or settings.DEFAULT_CURRENCY).upper()
    value = Decimal(str(amount or 0))
    decimals = 0 if currency == "JPY" else 2
    formatted = f"{value:,.{decimals}f}"
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        sign = "-" if value < 0 else ""
        return f"{sign}{symbol}{formatted.lstrip('-')}"
    return f"{currency} {formatted}"


def humanize_key(key: str) -> str:
    """``serialNumber`` -> ``Serial Number``."""
    spaced = re.sub(r"([A-Z])", r" \1", key).replace("_", " ").strip()
    return spaced[:1].upper() + spaced[1:]


def _format_date(value: Any) -> Optional[str]:
    return value.strftime("%b %d, %Y") if isinstance(value, datetime) else None


def _clean_phone(phone: str) -> str:
    digits = re.sub(r"[^\d]", "", phone or "")
    if not digits:
        raise ValidationError(message="Invalid phone number", field="phone")
    return digits


class ShareService:
    """
    Share-link builder.

    Args:
        app_url: Public web app URL used for deep links
    """

    def __init__(self, app_url: Optional[str] = None):
        self.app_url = (app_url or settings.APP_URL).rstrip("/")

    def deep_link(self, kind: str, record_id: str) -> str:
        """Link to a task or asset in the web app."""
        if kind not in ("task", "asset"):
            raise ValidationError(message=f"Cannot link to '{kind}'", field="kind")
        return f"{self.app_url}/dashboard/{kind}s?id={quote(record_id, safe='')}"

    def format_task_message(self, task: Dict[str, Any], asset: Optional[Dict[str, Any]] = None) -> str:
        status = task.get("status") or "PENDING"
        priority = task.get("priority") or "MEDIUM"

        message = "🔧 *Maintenance Task*\n\n"
        message += f"{STATUS_EMOJIS.get(status, '📋')} *{task.get('title', '')}*\n"
        message += f"{PRIORITY_EMOJIS.get(priority, '⚪')} Priority: {priority}\n"
        message += f"📊 Status: {status}\n\n"

        if task.get("description"):
            message += f"📝 *Description:*\n{task['description']}\n\n"
        if asset:
            message += f"🏗️ *Asset:* {asset.get('name', '')}\n"
        due = _format_date(task.get("dueDate"))
        if due:
            message += f"📅 *Due Date:* {due}\n"
        if task.get("assignedTo"):
            message += f"👤 *Assigned to:* {task['assignedTo']}\n"

        checklist = task.get("checklist") or []
        if checklist:
            message += "\n✅ *Checklist:*\n"
            for item in checklist:
                mark = "✅" if item.get("completed") else "⬜"
                message += f"{mark} {item.get('text', '')}\n"

        costs = task.get("costs") or []
        if costs:
            currency = costs[0].get("currency") or settings.DEFAULT_CURRENCY
            message += f"\n💰 *Total Cost:* {format_currency(total_cost(task), currency)}\n"

        if task.get("id"):
            message += f"\n🔗 *View Details:* {self.deep_link('task', task['id'])}\n"

        message += f"\n{FOOTER}"
        return message

    def format_asset_message(self, asset: Dict[str, Any]) -> str:
        message = "🏗️ *Asset Information*\n\n"
        message += f"📦 *{asset.get('name', '')}*\n"
        if asset.get("description"):
            message += f"📝 {asset['description']}\n\n"

        message += "📊 *Details:*\n"
        message += f"🔖 Asset ID: {asset.get('id', '')}\n"

        metadata = asset.get("metadata") or {}
        if metadata:
            message += "\n📋 *Specifications:*\n"
            for key, value in list(metadata.items())[:MAX_METADATA_SPECS]:
                message += f"• {humanize_key(key)}: {value}\n"

        created = _format_date(asset.get("createdAt"))
        if created:
            message += f"\n📅 *Created:* {created}\n"
        if asset.get("id"):
            message += f"\n🔗 *View Asset:* {self.deep_link('asset', asset['id'])}\n"

        message += f"\n{FOOTER}"
        return message

    def whatsapp_url(self, message: str, phone: Optional[str] = None, mobile: bool = False) -> str:
        """
        Direct chat link when a phone number is given, otherwise a contact
        picker (app scheme on mobile, WhatsApp Web on desktop).
        """
        text = quote(message, safe="")
        if phone:
            return f"{WA_ME_URL}{_clean_phone(phone)}?text={text}"
        if mobile:
            return f"{MOBILE_SEND_URL}?text={text}"
        return f"{WEB_SEND_URL}?text={text}"

    def task_share_url(
        self,
        task: Dict[str, Any],
        asset: Optional[Dict[str, Any]] = None,
        phone: Optional[str] = None,
        mobile: bool = False,
    ) -> str:
        return self.whatsapp_url(self.format_task_message(task, asset), phone, mobile)

    def asset_share_url(self, asset: Dict[str, Any], phone: Optional[str] = None, mobile: bool = False) -> str:
        return self.whatsapp_url(self.format_asset_message(asset), phone, mobile)

    def qr_code_url(self, message: str, size: int = 200) -> str:
        """QR image that opens the WhatsApp Web share link for ``message``."""
        target = quote(self.whatsapp_url(message), safe="")
        return f"{QR_CODE_URL}?size={size}x{size}&data={target}"
