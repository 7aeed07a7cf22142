"""
Flask CLI commands.

Commands:
- flask init-db: Create the database tables
- flask quote-stats: Print quote and inquiry statistics
"""

import json

import click
from restaurant_ops.database import create_schema, db_session
from restaurant_ops.services.inquiry_service import InquiryService
from restaurant_ops.services.quote_service import QuoteService
from restaurant_ops.utils.formatters import money_str


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables for quotes, inquiries and status history."""
        try:
            create_schema()
            click.echo(click.style('✅ Database tables created.', fg='green'))
        except Exception as e:
            click.echo(click.style(f'❌ Could not create tables: {str(e)}', fg='red'))
            raise click.Abort()

    @app.cli.command('quote-stats')
    @click.option('--json', 'as_json', is_flag=True, help='Print raw values instead of a summary')
    def quote_stats(as_json):
        """Print quote counts, value and acceptance rate."""
        try:
            quotes = QuoteService.from_app(app).statistics()
            inquiries = InquiryService.from_app().statistics()
        finally:
            db_session.remove()

        if as_json:
            click.echo(json.dumps({"quotes": quotes, "inquiries": inquiries}, default=str, indent=2))
            return

        click.echo(click.style('\nQuotes', bold=True))
        click.echo(f"   Total: {quotes['total_quotes']}")
        for status, count in quotes['by_status'].items():
            click.echo(f"   {status:<13} {count}")
        click.echo(f"   Value:   {money_str(quotes['total_value'])}")
        click.echo(f"   Average: {money_str(quotes['average_value'])}")
        click.echo(f"   Acceptance rate: {quotes['acceptance_rate']}%")

        click.echo(click.style('\nInquiries', bold=True))
        click.echo(f"   Total: {inquiries['total_inquiries']}")
        for status, count in inquiries['by_status'].items():
            click.echo(f"   {status:<13} {count}")
