import pytest
from decimal import Decimal

from restaurant_ops import create_app
from restaurant_ops.database import create_schema, drop_schema, get_session
from restaurant_ops.models import InquiryStatus
from restaurant_ops.services.financial_service import FinancialConfig
from restaurant_ops.services.inquiry_service import InquiryService
from restaurant_ops.services.quote_service import QuoteService, QuoteSettings
from restaurant_ops.services.repository import QuoteRepository


FOOD_ITEM = {
    'category': 'FOOD',
    'description': 'Taco platter',
    'quantity': 2,
    'unit_price': 25,
    'taxable': True,
}

BARTENDER = {
    'category': 'LABOR',
    'description': 'Bartender',
    'labor_role': 'bartender',
    'quantity': 1,
    'unit_price': 30,
    'hours': 4,
    'taxable': False,
}

# Two items, 8.5% tax, 50% deposit: grand total 174.25, deposit 87.125
SCENARIO_CONFIG = {'tax_rate': '8.5', 'deposit_type': 'PERCENTAGE', 'deposit_value': 50}


class FakeNotifier:
    """Records every message instead of sending it."""

    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def send(self, to, subject, body):
        self.sent.append({'to': to, 'subject': subject, 'body': body})
        return self.result


class ExplodingNotifier:
    def send(self, to, subject, body):
        raise ConnectionError('SMTP server unreachable')


class FakeRenderer:
    def __init__(self):
        self.contexts = []

    def render(self, context):
        self.contexts.append(context)
        return f"Quote {context['quote_number']}", f"Total {context['totals']['grand_total']}"


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    return create_app('config.TestingConfig')


@pytest.fixture(scope='function')
def client(app, session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session on a fresh in-memory schema."""
    with app.app_context():
        create_schema()
        session = get_session()
        yield session
        session.rollback()
        session.remove()
        drop_schema()


@pytest.fixture
def repository(session):
    return QuoteRepository(session)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def settings():
    return QuoteSettings(
        valid_days=30,
        number_prefix='Q',
        default_config=FinancialConfig(tax_rate=Decimal('0'), deposit_value=Decimal('20')),
        business_info={'name': 'Test Kitchen'},
    )


@pytest.fixture
def quote_service(repository, notifier, renderer, settings):
    return QuoteService(repository, notifier=notifier, renderer=renderer, settings=settings)


@pytest.fixture
def inquiry_service(repository):
    return InquiryService(repository)


@pytest.fixture
def make_inquiry(inquiry_service, session):
    """Factory creating an inquiry, optionally forced into a given status."""

    def _make(status=None, **fields):
        data = {'name': 'Ana Torres', 'email': 'ana@example.com', 'guest_count': 80}
        data.update(fields)
        inquiry = inquiry_service.create_inquiry(data)
        if status is not None:
            inquiry.status = status
            session.commit()
        return inquiry

    return _make


@pytest.fixture
def inquiry(make_inquiry):
    return make_inquiry()


@pytest.fixture
def draft_quote(quote_service, inquiry):
    """Scenario quote: grand total 174.25, deposit 87.125."""
    return quote_service.create(inquiry.id, [FOOD_ITEM, BARTENDER], SCENARIO_CONFIG).quote


@pytest.fixture
def accepted_quote(quote_service, draft_quote):
    quote_service.send(draft_quote.id)
    return quote_service.accept(draft_quote.id).quote

