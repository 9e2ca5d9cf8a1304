# tests/conftest.py
from __future__ import annotations

import pytest
import pytest_asyncio

from herbal_ledger.db.ledger_store import LedgerStore
from herbal_ledger.services.container import build_services


@pytest_asyncio.fixture
async def store():
    store = LedgerStore.from_url("sqlite:///:memory:")
    store.create_schema()
    yield store
    await store.aclose()


@pytest.fixture
def services(store):
    return build_services(store)


@pytest.fixture
def stock(services):
    """
    Register drug + source if missing and book one purchase.
    Returns the stock-in record.
    """

    async def _stock(drug_name: str, grams, total_amount,
                     source_name: str = "Tongrentang", **drug_kwargs):
        if not await services.drugs.get_by_name(drug_name):
            added = await services.drugs.add(drug_name, **drug_kwargs)
            assert added.success, added.message
        if not await services.sources.get_by_name(source_name):
            added = await services.sources.add(source_name)
            assert added.success, added.message
        result = await services.stock_ins.record_for(drug_name, source_name,
                                                     grams, total_amount)
        assert result.success, result.message
        return result.data

    return _stock
