"""
Pytest fixtures for martpos backend tests.

Provides an app per test on an in-memory SQLite database (or a JSON data file
under tmp_path), the resolved storage backend, a test client and a product
factory.
"""

from decimal import Decimal

import pytest

from martpos import create_app
from martpos.extensions import db
from martpos.storage import get_storage


def _make_app(tmp_path, backend: str):
    app = create_app({
        'TESTING': True,
        'STORAGE_BACKEND': backend,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DATA_FILE': str(tmp_path / 'db.json'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'POS_TIMEZONE': 'UTC',
        'WEEK_START': 'sunday',
    })
    return app


@pytest.fixture(scope='function', params=['sql', 'json'])
def app(request, tmp_path):
    """Application for testing, once per storage backend."""
    app = _make_app(tmp_path, request.param)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def sql_app(tmp_path):
    """Application pinned to the relational backend."""
    app = _make_app(tmp_path, 'sql')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def storage(app):
    """Storage backend for the current app."""
    return get_storage()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def make_product(storage):
    """Factory: create a product with sensible defaults."""
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        values = {
            'code': f"PRD-{counter['n']:08d}",
            'name': f"Product {counter['n']}",
            'category': 'Gift Items',
            'cost_price': Decimal('60'),
            'retail_price': Decimal('100'),
            'stock': 10,
        }
        values.update(overrides)
        return storage.upsert_product(values)

    return _make
