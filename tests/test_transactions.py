"""
Test suite for ledger transactions
"""

import pytest
from decimal import Decimal

from demobank.currency import Money
from demobank.exceptions import InvalidInputError, InvalidTransactionStateError
from demobank.transactions import DEBIT_TYPES, Transaction, TransactionStatus, TransactionType


def make_transaction(transaction_type=TransactionType.WITHDRAWAL, status=TransactionStatus.PENDING):
    return Transaction.create(
        account_id="acc-1",
        transaction_type=transaction_type,
        amount=Money(Decimal('25.00'), "TRY"),
        description="Test",
        status=status,
    )


class TestTransactionType:
    """Test debit/credit classification"""

    def test_debit_types(self):
        """Test withdrawals, outgoing transfers and fees are debits"""
        assert DEBIT_TYPES == {TransactionType.WITHDRAWAL, TransactionType.TRANSFER_OUT, TransactionType.FEE}
        assert TransactionType.FEE.is_debit
        assert TransactionType.DEPOSIT.is_credit
        assert TransactionType.INTEREST.is_credit
        assert TransactionType.TRANSFER_IN.is_credit


class TestTransaction:
    """Test transaction creation and status transitions"""

    def test_create_defaults(self):
        """Test transactions complete by default"""
        transaction = Transaction.create("acc-1", TransactionType.DEPOSIT,
                                         Money(Decimal('1'), "TRY"), "Deposit")
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.is_completed
        assert not transaction.is_open
        assert not transaction.is_debit
        assert transaction.timestamp == transaction.created_at

    def test_amount_must_be_positive(self):
        """Test zero amounts are rejected"""
        with pytest.raises(InvalidInputError):
            Transaction.create("acc-1", TransactionType.DEPOSIT, Money.zero("TRY"), "Nothing")

    def test_explicit_ids(self):
        """Test caller supplied ids and references are kept"""
        transaction = Transaction.create(
            "acc-1", TransactionType.TRANSFER_OUT, Money(Decimal('1'), "TRY"), "Transfer",
            external_reference="transfer-1", related_transaction_id="txn-in",
            transaction_id="txn-out",
        )
        assert transaction.id == "txn-out"
        assert transaction.related_transaction_id == "txn-in"
        assert transaction.external_reference == "transfer-1"

    def test_happy_path_transitions(self):
        """Test PENDING -> PROCESSING -> COMPLETED"""
        transaction = make_transaction()
        assert transaction.is_open
        transaction.mark_processing()
        assert transaction.status == TransactionStatus.PROCESSING
        assert transaction.is_open
        transaction.mark_completed()
        assert transaction.is_completed

    def test_pending_can_be_cancelled(self):
        """Test PENDING -> CANCELLED records the reason"""
        transaction = make_transaction()
        transaction.mark_cancelled("Customer request")
        assert transaction.status == TransactionStatus.CANCELLED
        assert transaction.failure_reason == "Customer request"

    @pytest.mark.parametrize("terminal", [
        TransactionStatus.COMPLETED, TransactionStatus.FAILED, TransactionStatus.CANCELLED,
    ])
    def test_terminal_states(self, terminal):
        """Test nothing leaves a terminal state"""
        transaction = make_transaction(status=terminal)
        for status in TransactionStatus:
            assert not transaction.can_transition_to(status)
        with pytest.raises(InvalidTransactionStateError):
            transaction.mark_processing()

    def test_pending_cannot_complete_directly(self):
        """Test PENDING -> COMPLETED is rejected"""
        transaction = make_transaction()
        with pytest.raises(InvalidTransactionStateError):
            transaction.mark_completed()
        assert transaction.status == TransactionStatus.PENDING

    def test_dict_conversion(self):
        """Test storage representation"""
        transaction = make_transaction()
        transaction.mark_processing()
        data = transaction.to_dict()

        assert data['amount'] == "25.00"
        assert data['currency'] == "TRY"
        assert data['status'] == "processing"

        restored = Transaction.from_dict(data)
        assert restored.id == transaction.id
        assert restored.amount == transaction.amount
        assert restored.status == TransactionStatus.PROCESSING
        assert restored.timestamp == transaction.timestamp
