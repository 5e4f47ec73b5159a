"""
Pytest fixtures for Batchman tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from batchman.adapters import reset_catalog_backend
from batchman.models import Location
from batchman.tests.testapp.models import Order, Product, UnitConversion


User = get_user_model()


@pytest.fixture(autouse=True)
def fresh_catalog_backend():
    """Each test resolves the catalog backend from its own settings."""
    reset_catalog_backend()
    yield
    reset_catalog_backend()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def loja(db):
    """Shop floor location."""
    return Location.objects.create(code='loja', name='Loja Centro')


@pytest.fixture
def deposito(db):
    """Warehouse location."""
    return Location.objects.create(code='deposito', name='Depósito')


def make_product(name, main_unit, **factors):
    product = Product.objects.create(name=name, main_unit=main_unit)
    for unit, factor in factors.items():
        UnitConversion.objects.create(product=product, unit=unit, factor=Decimal(str(factor)))
    return product


@pytest.fixture
def cafe(db):
    """Coffee sold by the case (main) or by the piece: 1 case = 12 pieces."""
    return make_product('Café', 'case', case=1, piece=12)


@pytest.fixture
def farinha(db):
    """Flour tracked in kg (main), bags of 25 kg and grams."""
    return make_product('Farinha', 'kg', kg=1, bag='0.04', g=1000)


@pytest.fixture
def order(db):
    return Order.objects.create(code='PED-001')


@pytest.fixture
def prices():
    """Prices for ``cafe``: a case costs 100, a piece 9."""
    return {'case': Decimal('100'), 'piece': Decimal('9')}
