from __future__ import annotations

from dataclasses import dataclass
from html import escape


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    subject: str
    text: str
    html: str


def render_delivery_email(
    *,
    subject: str,
    shop_name: str,
    order_name: str | None,
    page_url: str,
    item_titles: list[str],
) -> RenderedMessage:
    """배송 페이지 링크를 담은 안내 메일(text + html)을 만든다."""

    order_label = f" {order_name}" if order_name else ""
    lines = [f"Thank you for your order{order_label} from {shop_name}."]
    if item_titles:
        lines.append("")
        lines.append("Your downloads:")
        lines.extend(f"- {title}" for title in item_titles)
    lines.append("")
    lines.append(f"Download your files here: {page_url}")
    text = "\n".join(lines)

    items_html = ""
    if item_titles:
        items_html = (
            "<ul>"
            + "".join(f"<li>{escape(title)}</li>" for title in item_titles)
            + "</ul>"
        )
    html = (
        f"<p>Thank you for your order{escape(order_label)} from {escape(shop_name)}.</p>"
        f"{items_html}"
        f'<p><a href="{escape(page_url, quote=True)}">Download your files</a></p>'
    )

    return RenderedMessage(subject=subject, text=text, html=html)
