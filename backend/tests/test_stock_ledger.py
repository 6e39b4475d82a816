"""
Stock ledger tests.

Verifies:
- Adjustments move quantity_received and log one movement each
- Decrements below zero are refused before anything is written
- Resets write absolute counters and always log a snapshot
- Restored units beyond the sold counter come back as received stock
- Movements are append-only
"""

import pytest

from stockroom.extensions import db
from stockroom.errors import InsufficientStockError, NotFoundError
from stockroom.models import StockMovement
from stockroom.models.inventory import MOVEMENT_ADJUSTMENT, MOVEMENT_RESET, MOVEMENT_RETURN, MOVEMENT_SALE
from stockroom.services import stock_service
from stockroom.validation import ValidationError


def _movements(product):
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product.id)
        .order_by(StockMovement.id.asc())
        .all()
    )


class TestCurrentStock:
    def test_stock_is_received_minus_sold(self, product):
        product.quantity_sold = 4
        assert stock_service.current_stock(product) == 6

    @pytest.mark.parametrize(
        "received,sold,reorder,expected",
        [
            (10, 10, 3, "OUT"),
            (10, 7, 3, "LOW"),
            (10, 6, 3, "OK"),
            (0, 0, 0, "OUT"),
        ],
    )
    def test_status_thresholds(self, product, received, sold, reorder, expected):
        product.quantity_received = received
        product.quantity_sold = sold
        product.reorder_level = reorder
        assert stock_service.stock_status(product) == expected


class TestAdjustStock:
    def test_positive_adjustment_adds_received_units(self, org, owner, product):
        product_after, movement = stock_service.adjust_stock(
            product_id=product.id, org_id=org.id, delta=5, reason="Found in storage", user_id=owner.id
        )

        assert product_after.quantity_received == 15
        assert product_after.quantity_sold == 0
        assert movement.type == MOVEMENT_ADJUSTMENT
        assert (movement.previous_qty, movement.quantity, movement.new_qty) == (10, 5, 15)
        assert movement.reference == "Found in storage"
        assert movement.user_id == owner.id

    def test_negative_adjustment_does_not_count_as_sale(self, org, product):
        product_after, movement = stock_service.adjust_stock(
            product_id=product.id, org_id=org.id, delta=-3, reason="Damaged"
        )

        assert product_after.quantity_received == 7
        assert product_after.quantity_sold == 0
        assert movement.new_qty == 7

    def test_adjustment_to_exactly_zero_is_allowed(self, org, product):
        product_after, _ = stock_service.adjust_stock(
            product_id=product.id, org_id=org.id, delta=-10, reason="Expired batch"
        )
        assert stock_service.current_stock(product_after) == 0

    def test_insufficient_stock_writes_nothing(self, org, product):
        with pytest.raises(InsufficientStockError) as exc:
            stock_service.adjust_stock(product_id=product.id, org_id=org.id, delta=-11, reason="Damaged")

        assert exc.value.details == {"available": 10, "requested": 11}
        assert product.quantity_received == 10
        assert _movements(product) == []

    def test_adjust_down_to_zero_then_refuse_further_decrement(self, db_session, org, product):
        product.quantity_sold = 3
        db_session.commit()

        product_after, movement = stock_service.adjust_stock(
            product_id=product.id, org_id=org.id, delta=-7, reason="Water damage"
        )
        assert (movement.previous_qty, movement.new_qty) == (7, 0)
        assert stock_service.current_stock(product_after) == 0

        with pytest.raises(InsufficientStockError) as exc:
            stock_service.adjust_stock(product_id=product.id, org_id=org.id, delta=-1, reason="Damaged")

        assert exc.value.details == {"available": 0, "requested": 1}
        refreshed = stock_service.get_product(product.id, org.id, lock=True)
        assert (refreshed.quantity_received, refreshed.quantity_sold) == (3, 3)
        assert len(_movements(product)) == 1

    def test_zero_delta_rejected(self, org, product):
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(product_id=product.id, org_id=org.id, delta=0, reason="Nothing")

    def test_reason_required(self, org, product):
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(product_id=product.id, org_id=org.id, delta=1, reason="   ")
        assert _movements(product) == []

    def test_other_organization_cannot_adjust(self, other_org, product):
        with pytest.raises(NotFoundError):
            stock_service.adjust_stock(product_id=product.id, org_id=other_org.id, delta=1, reason="x")


class TestResetStock:
    def test_reset_with_sold_cleared(self, db_session, org, product):
        product.quantity_sold = 4
        db_session.commit()

        product_after, movement = stock_service.reset_stock(
            product_id=product.id, org_id=org.id, new_stock=20, reason="Inventory count"
        )

        assert product_after.quantity_received == 20
        assert product_after.quantity_sold == 0
        assert movement.type == MOVEMENT_RESET
        assert (movement.previous_qty, movement.quantity, movement.new_qty) == (6, 14, 20)

    def test_reset_keeping_sold(self, db_session, org, product):
        product.quantity_sold = 4
        db_session.commit()

        product_after, movement = stock_service.reset_stock(
            product_id=product.id, org_id=org.id, new_stock=2, reset_sold=False, reason="Recount"
        )

        assert product_after.quantity_sold == 4
        assert product_after.quantity_received == 6
        assert stock_service.current_stock(product_after) == 2
        assert movement.quantity == -4

    def test_reset_to_same_stock_still_logged(self, org, product):
        _, movement = stock_service.reset_stock(
            product_id=product.id, org_id=org.id, new_stock=10, reason="Verified"
        )

        assert movement.quantity == 0
        assert movement.previous_qty == movement.new_qty == 10
        assert len(_movements(product)) == 1

    def test_negative_target_rejected(self, org, product):
        with pytest.raises(ValidationError):
            stock_service.reset_stock(product_id=product.id, org_id=org.id, new_stock=-1, reason="x")


class TestApplyMovement:
    def test_sale_then_return_round_trips_counters(self, org, product):
        stock_service.apply_movement(
            product_id=product.id, org_id=org.id, delta=-4, movement_type=MOVEMENT_SALE, reason="Sale #1"
        )
        product_after, movement = stock_service.apply_movement(
            product_id=product.id, org_id=org.id, delta=4, movement_type=MOVEMENT_RETURN, reason="Sale #1 deleted"
        )

        assert product_after.quantity_sold == 0
        assert product_after.quantity_received == 10
        assert (movement.previous_qty, movement.new_qty) == (6, 10)

    def test_return_beyond_sold_counter_restores_received(self, db_session, org, product):
        # sales recorded before a reset that cleared quantity_sold
        product.quantity_sold = 2
        db_session.commit()

        product_after, _ = stock_service.apply_movement(
            product_id=product.id, org_id=org.id, delta=5, movement_type=MOVEMENT_RETURN, reason="Sale #9 deleted"
        )

        assert product_after.quantity_sold == 0
        assert product_after.quantity_received == 13
        assert stock_service.current_stock(product_after) == 13

    def test_reset_type_not_accepted_as_relative_movement(self, org, product):
        with pytest.raises(ValidationError):
            stock_service.apply_movement(
                product_id=product.id, org_id=org.id, delta=1, movement_type=MOVEMENT_RESET, reason="x"
            )

    def test_every_movement_chains_from_the_previous(self, org, product):
        for delta in (-2, 5, -1, -3):
            stock_service.adjust_stock(product_id=product.id, org_id=org.id, delta=delta, reason="chain")

        movements = _movements(product)
        assert [m.quantity for m in movements] == [-2, 5, -1, -3]
        for earlier, later in zip(movements, movements[1:]):
            assert later.previous_qty == earlier.new_qty
        assert movements[-1].new_qty == stock_service.current_stock(product) == 9


class TestMovementLog:
    def test_newest_first(self, org, product):
        for reason in ("first", "second", "third"):
            stock_service.adjust_stock(product_id=product.id, org_id=org.id, delta=1, reason=reason)

        movements = stock_service.list_movements(product_id=product.id, org_id=org.id)
        assert [m.reference for m in movements] == ["third", "second", "first"]

    def test_movements_cannot_be_edited(self, db_session, org, product):
        _, movement = stock_service.adjust_stock(product_id=product.id, org_id=org.id, delta=1, reason="x")

        movement.quantity = 99
        with pytest.raises(ValueError):
            db_session.flush()
        db_session.rollback()

    def test_movements_cannot_be_deleted(self, db_session, org, product):
        _, movement = stock_service.adjust_stock(product_id=product.id, org_id=org.id, delta=1, reason="x")

        db_session.delete(movement)
        with pytest.raises(ValueError):
            db_session.flush()
        db_session.rollback()
