"""
Pytest fixtures for TallyPOS backend tests.

Provides test database setup, tenant fixtures, and test client.
"""

from datetime import timedelta

import pytest

from tallypos import create_app
from tallypos.extensions import db
from tallypos.models import Company, Customer, Debt, Worker
from tallypos.services import inventory_service, receipt_service
from tallypos.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RESTORE_INVENTORY_ON_DELETE': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def company(db_session):
    """Tenant A."""
    company = Company(name="Acme Stores", tax_rate=0.0)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def other_company(db_session):
    """Tenant B."""
    company = Company(name="Beta Traders", tax_rate=0.0)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def worker(db_session, company):
    worker = Worker(company_id=company.id, name="Sam", role="cashier")
    db_session.add(worker)
    db_session.commit()
    return worker


@pytest.fixture(scope='function')
def customer(db_session, company):
    """Customer with a business name: label "Ada Ventures - Ada"."""
    customer = Customer(company_id=company.id, name="Ada", company="Ada Ventures", phone="0800")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def walk_in(db_session, company):
    """Customer without a business name: label "nocompany - Bola"."""
    customer = Customer(company_id=company.id, name="Bola", company=None)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def soap(db_session, company):
    """Box of 12 pieces: 10 boxes at 60 cost / 120 sale per box."""
    return inventory_service.create_item(
        company.id,
        "Soap",
        base_unit="box",
        atomic_unit="piece",
        conversion_factor=12,
        onhand=10,
        cost_price=60,
        sales_price=120,
    )


@pytest.fixture(scope='function')
def rice(db_session, company):
    """Sold by the bag only: 20 bags at 40 cost / 50 sale."""
    return inventory_service.create_item(
        company.id,
        "Rice",
        base_unit="bag",
        onhand=20,
        cost_price=40,
        sales_price=50,
    )


CUSTOMER = {"company": "Ada Ventures", "name": "Ada"}


@pytest.fixture(scope='function')
def make_receipt(company, worker, customer):
    """Factory: create a receipt for the default customer and return the result."""
    def _make(products, amount_paid=0, discount=0, **kwargs):
        kwargs.setdefault("customer", CUSTOMER)
        return receipt_service.create_receipt(
            company_id=company.id,
            worker_id=worker.id,
            products=products,
            amount_paid=amount_paid,
            discount=discount,
            **kwargs,
        )
    return _make


def backdate_debt(debt_id: int, days: int) -> Debt:
    """Move a debt's created_at `days` days into the past."""
    debt = db.session.get(Debt, debt_id)
    debt.created_at = utcnow() - timedelta(days=days)
    db.session.commit()
    return debt
