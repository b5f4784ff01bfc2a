"""
Flask CLI commands for store operations.

Commands:
- flask init-db: Create all tables
- flask create-admin: Create a new operator account
- flask restock: Set the stock of a variant
- flask low-stock-report: List (and optionally mail) variants running low
"""

import click
import re
from farmstore.database import get_session, create_all
from farmstore.models import AdminUser, AuditAction
from farmstore.exceptions import StoreError
from farmstore.services import stock_service
from farmstore.services.audit_service import log_action
from farmstore.services.email_service import send_low_stock_alert, operator_recipients


def init_cli_commands(app):
    """Register CLI commands with Flask app."""
    
    @app.cli.command('init-db')
    def init_db_command():
        """Create database tables for all models."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))
    
    @app.cli.command('create-admin')
    @click.option('--email', prompt=True, help='Admin email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
    def create_admin(email, password):
        """Create a new admin user for the back-office API."""
        db_session = get_session()
        
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email):
            click.echo(click.style('Invalid email. Use the format user@example.com', fg='red'))
            return
        
        if len(password) < 8:
            click.echo(click.style('Password must be at least 8 characters.', fg='red'))
            return
        
        existing_admin = db_session.query(AdminUser).filter_by(email=email).first()
        if existing_admin:
            click.echo(click.style(f'An admin with email {email} already exists', fg='red'))
            return
        
        try:
            admin = AdminUser(email=email)
            admin.set_password(password)
            
            db_session.add(admin)
            db_session.commit()
            
            click.echo(click.style('\nAdmin created.', fg='green', bold=True))
            click.echo(f'   Email: {email}')
            click.echo(f'   ID: {admin.id}')
            
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error creating admin: {str(e)}', fg='red'))
    
    @app.cli.command('restock')
    @click.option('--variant-id', required=True, type=int, help='Product variant id')
    @click.option('--quantity', required=True, type=int, help='New absolute stock quantity')
    def restock(variant_id, quantity):
        """Set a variant's stock to an absolute quantity."""
        db_session = get_session()
        try:
            previous = stock_service.get_available(db_session, variant_id)
            stock_service.adjust(db_session, variant_id, quantity)
            log_action(
                db_session,
                AuditAction.STOCK_ADJUSTED,
                resource_type='variant',
                resource_id=variant_id,
                details={'from': previous, 'to': quantity, 'source': 'cli'}
            )
            db_session.commit()
        except StoreError as e:
            db_session.rollback()
            click.echo(click.style(f'{e.message}', fg='red'))
            return
        
        click.echo(click.style(f'Variant {variant_id}: {previous} -> {quantity}', fg='green'))
    
    @app.cli.command('low-stock-report')
    @click.option('--threshold', type=int, default=None, help='Report variants at or below this quantity')
    @click.option('--email/--no-email', default=False, help='Also mail the report to ORDER_NOTIFICATION_EMAIL')
    def low_stock_report(threshold, email):
        """List variants running low on stock."""
        if threshold is None:
            threshold = app.config.get('LOW_STOCK_THRESHOLD', 10)
        
        items = stock_service.get_low_stock(get_session(), threshold)
        if not items:
            click.echo(click.style(f'No variants at or below {threshold}.', fg='green'))
            return
        
        for item in items:
            click.echo(f"{item['stockQuantity']:>5}  {item['variantName']} ({item['sku'] or '-'})")
        
        if email:
            recipients = operator_recipients()
            if send_low_stock_alert(recipients, items):
                click.echo(click.style(f'Report sent to {len(recipients)} recipient(s).', fg='green'))
            else:
                click.echo(click.style('Failed to send the report.', fg='red'))
