"""
Email service for operator notifications.
Uses Flask-Mail for SMTP integration with UTF-8 support.
"""
import logging
from typing import List, Dict, Any

from flask import current_app
from flask_mail import Mail, Message

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """
    Check if mail is properly configured and enabled.
    Prevents 500 errors in dev or misconfigured environments.
    """
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def operator_recipients() -> List[str]:
    raw = current_app.config.get('ORDER_NOTIFICATION_EMAIL') or ''
    return [addr.strip() for addr in raw.split(',') if addr.strip()]


def _render_order_rows(order) -> str:
    rows = []
    for item in order.items:
        name = item.product.name if item.product else f'Product #{item.product_id}'
        pack = item.variant.pack_label if item.variant else ''
        rows.append(
            f"<tr><td>{name} {pack}</td><td>{item.quantity}</td>"
            f"<td>₹{item.price:.2f}</td><td>₹{item.line_total:.2f}</td></tr>"
        )
    return "\n".join(rows)


def send_order_notification_to_admin(order) -> bool:
    """
    Notify operators that a new order was placed.
    
    Never raises: the order already exists when this runs.
    
    Returns:
        True if sent (or mail disabled), False on failure
    """
    try:
        recipients = operator_recipients()
        if not _mail_enabled() or not recipients:
            logger.warning(f"[MAIL DISABLED] Order notification skipped for {order.tracking_id}")
            return True
        
        info = order.customer_info or {}
        address = ", ".join(
            str(info[k]) for k in ('address', 'city', 'state', 'pincode') if info.get(k)
        )
        
        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <h2>New order {order.tracking_id}</h2>
            <p><strong>Customer:</strong> {info.get('name', '')} ({info.get('email', '')}, {info.get('phone', '')})</p>
            <p><strong>Ship to:</strong> {address}</p>
            <p><strong>Payment:</strong> {order.payment_method.value.upper()}</p>
            <table border="1" cellpadding="6" cellspacing="0">
                <tr><th>Item</th><th>Qty</th><th>Price</th><th>Total</th></tr>
                {_render_order_rows(order)}
            </table>
            <p>Subtotal: ₹{order.subtotal:.2f}<br>
               Discount: ₹{order.discount_amount:.2f}<br>
               <strong>Total: ₹{order.total:.2f}</strong></p>
        </body>
        </html>
        """
        
        msg = Message(
            subject=f"New order {order.tracking_id} - ₹{order.total:.2f}",
            recipients=recipients,
            html=html_body,
            charset='utf-8'
        )
        mail.send(msg)
        logger.info(f"[EMAIL] Order notification sent for {order.tracking_id}")
        return True
    
    except Exception as e:
        logger.exception(f"[EMAIL] Failed to send order notification for {order.tracking_id}: {e}")
        return False


def send_low_stock_alert(to_emails: List[str], items: List[Dict[str, Any]]) -> bool:
    """Send the low-stock report produced by stock_service.get_low_stock."""
    try:
        if not _mail_enabled() or not to_emails or not items:
            return True
        
        lines = [f"- {item['variantName']}: {item['stockQuantity']} left" for item in items]
        msg = Message(
            subject=f"Low stock: {len(items)} variant(s)",
            recipients=to_emails,
            body="The following variants are running low:\n\n" + "\n".join(lines)
        )
        mail.send(msg)
        return True
    
    except Exception:
        logger.exception("Error sending low stock alert")
        return False
