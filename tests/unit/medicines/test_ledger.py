"""Unit tests for the Inventory Ledger."""

from uuid import uuid4

import pytest

from modules.medicines.exceptions import InsufficientStock, InvalidQuantity, MedicineNotFound
from modules.medicines.ledger import InventoryLedger
from modules.medicines.repositories.django_repository import MedicineDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def ledger():
    return InventoryLedger(MedicineDjangoRepository())


class TestIncrement:
    def test_adds_to_stock(self, ledger, medicine_x):
        ledger.increment(medicine_x.id, 4)
        ledger.increment(str(medicine_x.id), 6)

        medicine_x.refresh_from_db()
        assert medicine_x.quantity == 10

    def test_zero_quantity_rejected(self, ledger, medicine_x):
        with pytest.raises(InvalidQuantity):
            ledger.increment(medicine_x.id, 0)

    def test_unknown_medicine(self, ledger):
        with pytest.raises(MedicineNotFound):
            ledger.increment(uuid4(), 1)

    def test_deleted_medicine_still_receives_stock(self, ledger, medicine_x):
        medicine_x.delete()

        ledger.increment(medicine_x.id, 3)

        medicine_x.refresh_from_db()
        assert medicine_x.quantity == 3


class TestDecrement:
    def test_removes_from_stock(self, ledger, medicine_x):
        ledger.increment(medicine_x.id, 5)

        ledger.decrement(medicine_x.id, 5)

        medicine_x.refresh_from_db()
        assert medicine_x.quantity == 0

    def test_never_goes_below_zero(self, ledger, medicine_x):
        ledger.increment(medicine_x.id, 2)

        with pytest.raises(InsufficientStock):
            ledger.decrement(medicine_x.id, 3)

        medicine_x.refresh_from_db()
        assert medicine_x.quantity == 2

    def test_unknown_medicine(self, ledger):
        with pytest.raises(MedicineNotFound):
            ledger.decrement(uuid4(), 1)

    def test_negative_quantity_rejected(self, ledger, medicine_x):
        with pytest.raises(InvalidQuantity):
            ledger.decrement(medicine_x.id, -1)


class TestReceive:
    def test_aggregates_per_medicine(self, ledger, medicine_x, medicine_y):
        ledger.receive([(medicine_x.id, 2), (medicine_y.id, 1), (str(medicine_x.id), 3)])

        medicine_x.refresh_from_db()
        medicine_y.refresh_from_db()
        assert medicine_x.quantity == 5
        assert medicine_y.quantity == 1

    def test_empty_is_a_noop(self, ledger, medicine_x):
        ledger.receive([])

        medicine_x.refresh_from_db()
        assert medicine_x.quantity == 0

    def test_invalid_item_rejected_before_any_movement(self, ledger, medicine_x, medicine_y):
        with pytest.raises(InvalidQuantity):
            ledger.receive([(medicine_x.id, 2), (medicine_y.id, 0)])

        medicine_x.refresh_from_db()
        assert medicine_x.quantity == 0
