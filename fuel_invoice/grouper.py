"""Group POS transactions by product, payment method and credit customer."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .schemas import GroupKey, TransactionGroup, TransactionRecord
from .utils import money

logger = logging.getLogger(__name__)


def group_key(txn: TransactionRecord) -> GroupKey:
    # a fixed party name means the invoice never names the credit customer
    credit_id = None if txn.party_name_strategy == "fixed" else txn.credit_customer_id
    return (txn.product_id, txn.payment_method_id, credit_id)


def _new_group(key: GroupKey, txn: TransactionRecord) -> TransactionGroup:
    product_id, payment_method_id, credit_id = key
    return TransactionGroup(
        product_id=product_id,
        payment_method_id=payment_method_id,
        credit_customer_id=credit_id,
        product_name=txn.product_name,
        is_fuel=txn.is_fuel,
        payment_method_name=txn.payment_method_name,
        bill_mode=txn.bill_mode,
        party_name_strategy=txn.party_name_strategy,
        default_party_name=txn.default_party_name,
        party_name_uppercase=txn.party_name_uppercase,
        credit_customer_name=txn.credit_customer_name if credit_id is not None else None,
        first_transaction_time=txn.transaction_time,
    )


def group_transactions(transactions: Iterable[TransactionRecord]) -> List[TransactionGroup]:
    """Return groups in first-seen order; the first transaction's metadata wins."""
    groups: Dict[GroupKey, TransactionGroup] = {}
    count = 0
    for txn in transactions:
        count += 1
        key = group_key(txn)
        group = groups.get(key)
        if group is None:
            group = groups[key] = _new_group(key, txn)
        group.total_qty += txn.quantity
        group.total_amount += txn.amount
        if txn.id is not None:
            group.transaction_ids.append(txn.id)

    for group in groups.values():
        group.total_amount = money(group.total_amount)
    logger.debug("grouped %d transactions into %d groups", count, len(groups))
    return list(groups.values())
