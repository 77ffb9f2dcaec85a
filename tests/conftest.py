from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.medicines.models import Medicine
from modules.medicines.repositories.django_repository import MedicineDjangoRepository
from modules.orders.constants import StatusPolicy
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService, ReconciliationService

SHOP = "city-pharmacy"
OTHER_SHOP = "town-pharmacy"


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def shop_user():
    return get_user_model().objects.create_user(username=SHOP, password="testpass123")


@pytest.fixture()
def auth_client(shop_user):
    """APIClient force-authenticated as the ``city-pharmacy`` shop."""
    client = APIClient()
    client.force_authenticate(user=shop_user)
    return client


@pytest.fixture()
def other_client():
    """APIClient authenticated as a different shop."""
    client = APIClient()
    user = get_user_model().objects.create_user(username=OTHER_SHOP, password="testpass123")
    client.force_authenticate(user=user)
    return client


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def medicine_x():
    return Medicine.objects.create(
        username=SHOP, name="Paracetamol 500mg", price=Decimal("2.50"), quantity=0
    )


@pytest.fixture()
def medicine_y():
    return Medicine.objects.create(
        username=SHOP, name="Amoxicillin 250mg", price=Decimal("8.00"), quantity=0
    )


@pytest.fixture()
def foreign_medicine():
    return Medicine.objects.create(
        username=OTHER_SHOP, name="Cetirizine 10mg", price=Decimal("1.20"), quantity=0
    )


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        medicine_repository=MedicineDjangoRepository(),
    )


@pytest.fixture()
def reconciliation_service():
    return ReconciliationService(
        order_repository=OrderDjangoRepository(),
        medicine_repository=MedicineDjangoRepository(),
        status_policy=StatusPolicy.DERIVED,
    )


@pytest.fixture()
def place_order(order_service):
    """Place an order for ``SHOP``: ``place_order((medicine, qty), ...)``."""

    def _place(*lines, supplier_name="Apex Distributors"):
        dto = PlaceOrderDTO(
            username=SHOP,
            supplier_name=supplier_name,
            items=[
                PlaceOrderItemDTO(medicine_id=medicine.id, quantity=quantity)
                for medicine, quantity in lines
            ],
        )
        return order_service.place_order(dto)

    return _place
