# Overview: Pytest coverage for receipt create, edit, flag and delete.

"""
Receipt Transaction Engine Tests

Covers:
- balance == total - amount_paid - discount after create and update
- all-or-nothing writes when a product, unit or customer is unknown
- net stock deltas on edit, stock reversal on flag/unflag
- debt creation, three-way debt reconciliation on edit, the debt gate
"""

import pytest

from conftest import CUSTOMER, backdate_debt
from tallypos.models import (
    BreakdownHistory, Debt, InventoryItem, Receipt, ReceiptDetail, StockTransaction, Worker,
)
from tallypos.models.debts import DEBT_STATUS_PENDING
from tallypos.services import inventory_service, receipt_service
from tallypos.services.errors import (
    ConversionNotFoundError,
    CustomerNotFoundError,
    ProductNotFoundError,
    ReceiptNotFoundError,
    WorkerNotFoundError,
)
from tallypos.validation import ValidationError


def onhand(session, item):
    return session.get(InventoryItem, item.id).onhand


def assert_balance_invariant(receipt):
    assert receipt.balance == pytest.approx(receipt.total - receipt.amount_paid - receipt.discount)


class TestCreateReceipt:
    def test_base_unit_sale(self, db_session, rice, make_receipt):
        result = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=60, discount=10)
        receipt = result.receipt

        assert receipt.total == 100
        assert receipt.balance == 30
        assert receipt.profit == pytest.approx(20)
        assert receipt.flagged is False
        assert_balance_invariant(receipt)
        assert onhand(db_session, rice) == 18

        details = db_session.query(ReceiptDetail).filter_by(receipt_id=receipt.id).all()
        assert len(details) == 1
        assert details[0].quantity == 2
        assert details[0].inventory_id == rice.id
        assert details[0].total_price == 100

        tx = db_session.query(StockTransaction).filter_by(receipt_id=receipt.id).one()
        assert tx.type == inventory_service.TX_SALE
        assert tx.quantity_delta == -2

    def test_balance_opens_linked_debt(self, db_session, rice, customer, worker, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=60, discount=10).receipt

        debt = db_session.query(Debt).filter_by(receipt_id=receipt.id).one()
        assert receipt.debt_id == debt.id
        assert debt.amount == 30
        assert debt.status == DEBT_STATUS_PENDING
        assert debt.customer_id == customer.id
        assert debt.worker_id == worker.id

    def test_fully_paid_opens_no_debt(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt

        assert receipt.balance == 0
        assert receipt.debt_id is None
        assert db_session.query(Debt).count() == 0

    def test_converted_sale(self, db_session, soap, make_receipt):
        receipt = make_receipt([{"name": "soap", "quantity": 3, "unit": "piece"}], amount_paid=30).receipt

        assert receipt.total == pytest.approx(30)
        assert receipt.profit == pytest.approx(15)
        assert receipt.includes_unit_breakdown is True

        item = db_session.get(InventoryItem, soap.id)
        assert item.onhand == pytest.approx(9.75)
        assert item.atomic_onhand == pytest.approx(117)

        detail = receipt.details[0]
        assert detail.name == "Soap"
        assert detail.quantity == pytest.approx(0.25)
        assert detail.atomic_quantity == pytest.approx(3)
        assert detail.sales_price == pytest.approx(120)
        assert detail.conversion_rate == 12
        assert detail.original_unit == "piece"
        assert detail.original_quantity == 3
        assert detail.needs_conversion is True

        assert db_session.query(BreakdownHistory).filter_by(inventory_id=soap.id).count() == 1

    def test_loss_reduces_profit(self, db_session, company, make_receipt):
        inventory_service.create_item(
            company.id, "Cloth",
            base_unit="roll", atomic_unit="yard", conversion_factor=10,
            loss_factor=10, onhand=5, cost_price=100, sales_price=200,
        )
        receipt = make_receipt([{"name": "Cloth", "quantity": 5, "unit": "yard"}], amount_paid=100).receipt

        # (200 - 100) * 0.5 - 10
        assert receipt.profit == pytest.approx(40)
        assert receipt.details[0].loss == pytest.approx(10)

    def test_balance_invariant_across_lines(self, db_session, rice, soap, make_receipt):
        receipt = make_receipt(
            [
                {"name": "Rice", "quantity": 1},
                {"name": "Soap", "quantity": 6, "unit": "piece"},
            ],
            amount_paid=50,
            discount=5,
        ).receipt

        assert receipt.total == pytest.approx(110)
        assert receipt.balance == pytest.approx(55)
        assert_balance_invariant(receipt)

    def test_computed_total_wins_over_client_total(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100, total=1).receipt
        assert receipt.total == 100

    def test_client_total_is_fallback_for_zero(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 0}], amount_paid=40, total=40).receipt

        assert receipt.total == 40
        assert receipt.balance == 0

    def test_legacy_label_and_case_insensitive_match(self, db_session, rice, customer, make_receipt):
        receipt = make_receipt(
            [{"name": "Rice", "quantity": 1}],
            amount_paid=50,
            customer="ADA VENTURES - ada",
        ).receipt
        assert receipt.customer_id == customer.id

    def test_nocompany_label_matches_customer_without_company(self, db_session, rice, walk_in, make_receipt):
        receipt = make_receipt(
            [{"name": "Rice", "quantity": 1}],
            amount_paid=50,
            customer="nocompany - Bola",
        ).receipt
        assert receipt.customer_id == walk_in.id

    def test_empty_products_rejected_before_db_access(self, db_session):
        # Unknown tenant, worker and customer: only payload validation can fire
        with pytest.raises(ValidationError) as excinfo:
            receipt_service.create_receipt(
                company_id=99999,
                worker_id=99999,
                customer="Nobody - Nobody",
                products=[],
                amount_paid=0,
                discount=0,
            )
        assert "non-empty" in str(excinfo.value)
        assert db_session.query(Receipt).count() == 0

    def test_unknown_customer(self, db_session, rice, make_receipt):
        with pytest.raises(CustomerNotFoundError):
            make_receipt([{"name": "Rice", "quantity": 1}], customer={"company": "Acme", "name": "Ghost"})

        assert db_session.query(Receipt).count() == 0
        assert onhand(db_session, rice) == 20

    def test_worker_from_other_company(self, db_session, company, other_company, customer, rice):
        outsider = Worker(company_id=other_company.id, name="Eve")
        db_session.add(outsider)
        db_session.commit()

        with pytest.raises(WorkerNotFoundError):
            receipt_service.create_receipt(
                company_id=company.id,
                worker_id=outsider.id,
                customer=CUSTOMER,
                products=[{"name": "Rice", "quantity": 1}],
            )

    def test_unknown_product_aborts_whole_receipt(self, db_session, rice, soap, make_receipt):
        with pytest.raises(ProductNotFoundError) as excinfo:
            make_receipt(
                [
                    {"name": "Rice", "quantity": 1},
                    {"name": "Beans", "quantity": 1},
                    {"name": "Soap", "quantity": 1, "unit": "piece"},
                ],
                amount_paid=10,
            )
        assert "Beans" in str(excinfo.value)

        assert db_session.query(Receipt).count() == 0
        assert db_session.query(ReceiptDetail).count() == 0
        assert db_session.query(Debt).count() == 0
        assert db_session.query(StockTransaction).count() == 0
        assert onhand(db_session, rice) == 20
        assert onhand(db_session, soap) == 10

    def test_unknown_unit_aborts_whole_receipt(self, db_session, rice, soap, make_receipt):
        with pytest.raises(ConversionNotFoundError):
            make_receipt(
                [
                    {"name": "Rice", "quantity": 1},
                    {"name": "Soap", "quantity": 1, "unit": "crate"},
                ],
            )

        assert db_session.query(Receipt).count() == 0
        assert db_session.query(BreakdownHistory).count() == 0
        assert onhand(db_session, rice) == 20

    def test_aborted_sale_leaves_nothing_for_next_commit(self, db_session, soap, make_receipt):
        with pytest.raises(ProductNotFoundError):
            make_receipt(
                [
                    {"name": "Soap", "quantity": 2, "unit": "piece"},
                    {"name": "Ghost", "quantity": 1},
                ],
            )

        # A later unrelated commit must not flush leftovers of the failed sale
        db_session.commit()

        assert db_session.query(BreakdownHistory).count() == 0
        assert db_session.query(Receipt).count() == 0
        assert db_session.get(InventoryItem, soap.id).last_breakdown_at is None


class TestDebtGate:
    def test_prior_unpaid_debt_short_circuits(self, db_session, rice, make_receipt):
        first = make_receipt([{"name": "Rice", "quantity": 1}], amount_paid=20).receipt
        old_debt = backdate_debt(first.debt_id, days=2)

        result = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=50, check_debt=True)

        assert result.existing_debt is not None
        assert result.existing_debt.id == old_debt.id
        # Receipt is committed but carries no new debt
        saved = db_session.get(Receipt, result.receipt.id)
        assert saved is not None
        assert saved.balance == 50
        assert saved.debt_id is None
        assert db_session.query(Debt).count() == 1
        # Stock still moved for the committed receipt
        assert onhand(db_session, rice) == 17

    def test_debt_from_today_does_not_trigger(self, db_session, rice, make_receipt):
        make_receipt([{"name": "Rice", "quantity": 1}], amount_paid=20)

        result = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=50, check_debt=True)

        assert result.existing_debt is None
        assert result.receipt.debt_id is not None
        assert db_session.query(Debt).count() == 2

    def test_debt_on_flagged_receipt_does_not_trigger(self, db_session, rice, make_receipt):
        first = make_receipt([{"name": "Rice", "quantity": 1}], amount_paid=20).receipt
        backdate_debt(first.debt_id, days=2)
        receipt_service.flag_receipt(first.id, True)

        result = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=50, check_debt=True)

        assert result.existing_debt is None
        assert db_session.query(Debt).count() == 2

    def test_gate_off_by_default(self, db_session, rice, make_receipt):
        first = make_receipt([{"name": "Rice", "quantity": 1}], amount_paid=20).receipt
        backdate_debt(first.debt_id, days=2)

        result = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=50)

        assert result.existing_debt is None
        assert db_session.query(Debt).count() == 2


class TestUpdateReceipt:
    def test_net_delta_increase_and_decrease(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt

        receipt_service.update_receipt(receipt.id, CUSTOMER, [{"name": "Rice", "quantity": 5}], amount_paid=250)
        assert onhand(db_session, rice) == 15

        receipt_service.update_receipt(receipt.id, CUSTOMER, [{"name": "Rice", "quantity": 1}], amount_paid=50)
        assert onhand(db_session, rice) == 19

        edits = db_session.query(StockTransaction).filter_by(
            receipt_id=receipt.id, type=inventory_service.TX_SALE_EDIT,
        ).order_by(StockTransaction.id.asc()).all()
        assert [e.quantity_delta for e in edits] == [-3, 4]

    def test_dropped_product_is_restocked(self, db_session, rice, soap, make_receipt):
        receipt = make_receipt(
            [
                {"name": "Rice", "quantity": 2},
                {"name": "Soap", "quantity": 12, "unit": "piece"},
            ],
            amount_paid=220,
        ).receipt
        assert db_session.get(InventoryItem, soap.id).atomic_onhand == pytest.approx(108)

        receipt_service.update_receipt(
            receipt.id, CUSTOMER, [{"name": "Soap", "quantity": 24, "unit": "piece"}], amount_paid=240,
        )

        assert onhand(db_session, rice) == 20
        item = db_session.get(InventoryItem, soap.id)
        assert item.onhand == pytest.approx(8)
        assert item.atomic_onhand == pytest.approx(96)

        details = db_session.query(ReceiptDetail).filter_by(receipt_id=receipt.id).all()
        assert [d.name for d in details] == ["Soap"]

    def test_totals_recomputed(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt

        result = receipt_service.update_receipt(
            receipt.id, CUSTOMER, [{"name": "Rice", "quantity": 4}], amount_paid=120, discount=20,
        )

        updated = result.receipt
        assert updated.id == receipt.id
        assert updated.total == 200
        assert updated.profit == pytest.approx(40)
        assert updated.balance == 60
        assert_balance_invariant(updated)

    def test_no_debt_then_balance_opens_debt(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt
        assert receipt.debt_id is None

        receipt_service.update_receipt(receipt.id, CUSTOMER, [{"name": "Rice", "quantity": 2}], amount_paid=70)

        debt = db_session.query(Debt).filter_by(receipt_id=receipt.id).one()
        assert debt.amount == 30
        assert db_session.get(Receipt, receipt.id).debt_id == debt.id

    def test_existing_debt_amount_rewritten(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=70).receipt
        debt_id = receipt.debt_id

        receipt_service.update_receipt(receipt.id, CUSTOMER, [{"name": "Rice", "quantity": 3}], amount_paid=70)

        assert db_session.get(Debt, debt_id).amount == 80
        assert db_session.get(Receipt, receipt.id).debt_id == debt_id
        assert db_session.query(Debt).count() == 1

    def test_paid_off_edit_deletes_debt(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=70).receipt
        debt_id = receipt.debt_id

        receipt_service.update_receipt(receipt.id, CUSTOMER, [{"name": "Rice", "quantity": 2}], amount_paid=100)

        assert db_session.get(Debt, debt_id) is None
        assert db_session.get(Receipt, receipt.id).debt_id is None

    def test_failed_edit_leaves_receipt_untouched(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=70).receipt

        with pytest.raises(ProductNotFoundError):
            receipt_service.update_receipt(
                receipt.id, CUSTOMER,
                [{"name": "Rice", "quantity": 5}, {"name": "Beans", "quantity": 1}],
                amount_paid=0,
            )

        saved = db_session.get(Receipt, receipt.id)
        assert saved.total == 100
        assert saved.balance == 30
        assert [d.quantity for d in saved.details] == [2]
        assert onhand(db_session, rice) == 18

    def test_unknown_receipt(self, db_session, rice):
        with pytest.raises(ReceiptNotFoundError):
            receipt_service.update_receipt("missing", CUSTOMER, [{"name": "Rice", "quantity": 1}])

    def test_unknown_customer(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt

        with pytest.raises(CustomerNotFoundError):
            receipt_service.update_receipt(receipt.id, "Nobody - Ghost", [{"name": "Rice", "quantity": 1}])

    def test_flagged_receipt_edit_moves_no_stock(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt
        receipt_service.flag_receipt(receipt.id, True)
        assert onhand(db_session, rice) == 20

        receipt_service.update_receipt(receipt.id, CUSTOMER, [{"name": "Rice", "quantity": 6}], amount_paid=300)
        assert onhand(db_session, rice) == 20

        # Unflagging applies the edited quantity
        receipt_service.flag_receipt(receipt.id, False)
        assert onhand(db_session, rice) == 14


class TestFlagReceipt:
    def test_flag_then_unflag_restores_onhand(self, db_session, company, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 5}], amount_paid=250).receipt
        assert onhand(db_session, rice) == 15

        result = receipt_service.flag_receipt(receipt.id, True, company.id)
        assert result.receipt.flagged is True
        assert onhand(db_session, rice) == 20

        result = receipt_service.flag_receipt(receipt.id, False, company.id)
        assert result.receipt.flagged is False
        assert onhand(db_session, rice) == 15

        types = [
            t.type for t in db_session.query(StockTransaction).filter_by(
                receipt_id=receipt.id,
            ).order_by(StockTransaction.id.asc())
        ]
        assert types == [
            inventory_service.TX_SALE,
            inventory_service.TX_VOID,
            inventory_service.TX_UNVOID,
        ]

    def test_repeating_current_state_is_noop(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 5}], amount_paid=250).receipt

        receipt_service.flag_receipt(receipt.id, True)
        receipt_service.flag_receipt(receipt.id, True)
        assert onhand(db_session, rice) == 20

        receipt_service.flag_receipt(receipt.id, False)
        receipt_service.flag_receipt(receipt.id, False)
        assert onhand(db_session, rice) == 15

    def test_converted_line_restores_atomic_stock(self, db_session, soap, make_receipt):
        receipt = make_receipt([{"name": "Soap", "quantity": 6, "unit": "piece"}], amount_paid=60).receipt

        receipt_service.flag_receipt(receipt.id, True)

        item = db_session.get(InventoryItem, soap.id)
        assert item.onhand == pytest.approx(10)
        assert item.atomic_onhand == pytest.approx(120)

    def test_debt_untouched(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=70).receipt
        debt_id = receipt.debt_id

        receipt_service.flag_receipt(receipt.id, True)

        debt = db_session.get(Debt, debt_id)
        assert debt.amount == 30
        assert debt.status == DEBT_STATUS_PENDING

    def test_wrong_company(self, db_session, other_company, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt

        with pytest.raises(ReceiptNotFoundError):
            receipt_service.flag_receipt(receipt.id, True, other_company.id)
        assert onhand(db_session, rice) == 18

    def test_flag_must_be_boolean(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt

        with pytest.raises(ValidationError):
            receipt_service.flag_receipt(receipt.id, "yes")


class TestDeleteReceipt:
    def test_delete_cascades_details_and_debt(self, db_session, rice, make_receipt):
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=70).receipt
        receipt_id, debt_id = receipt.id, receipt.debt_id

        result = receipt_service.delete_receipt(receipt_id)

        assert result["inventory_restored"] is False
        assert db_session.get(Receipt, receipt_id) is None
        assert db_session.get(Debt, debt_id) is None
        assert db_session.query(ReceiptDetail).filter_by(receipt_id=receipt_id).count() == 0
        # Inventory is not restored by default
        assert onhand(db_session, rice) == 18

    def test_delete_unknown(self, db_session):
        with pytest.raises(ReceiptNotFoundError):
            receipt_service.delete_receipt("missing")

    def test_delete_restores_when_enabled(self, app, db_session, rice, make_receipt, monkeypatch):
        monkeypatch.setitem(app.config, "RESTORE_INVENTORY_ON_DELETE", True)
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt

        result = receipt_service.delete_receipt(receipt.id)

        assert result["inventory_restored"] is True
        assert onhand(db_session, rice) == 20

    def test_flagged_receipt_not_restored_twice(self, app, db_session, rice, make_receipt, monkeypatch):
        monkeypatch.setitem(app.config, "RESTORE_INVENTORY_ON_DELETE", True)
        receipt = make_receipt([{"name": "Rice", "quantity": 2}], amount_paid=100).receipt
        receipt_service.flag_receipt(receipt.id, True)

        receipt_service.delete_receipt(receipt.id)

        assert onhand(db_session, rice) == 20
