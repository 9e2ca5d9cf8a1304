# tests/test_stock_ledgers.py
from decimal import Decimal

import pytest

from herbal_ledger.core.errors import StorageError


# -------------------------
# Stock in
# -------------------------
async def test_stock_in_derives_unit_price(services, stock):
    rec = await stock("Gancao", 100, 200)

    assert rec["unit_price"] == Decimal("2.00")
    assert rec["remaining_grams"] == Decimal("100")
    assert rec["drug_name"] == "Gancao"
    assert rec["source_name"] == "Tongrentang"
    assert rec["in_time"] is not None


async def test_stock_in_rounds_unit_price_half_up(services, stock):
    rec = await stock("Huangqi", 3, 10)
    assert rec["unit_price"] == Decimal("3.33")

    rec = await stock("Danggui", 8, 1)
    assert rec["unit_price"] == Decimal("0.13")


@pytest.mark.parametrize("grams,amount", [(0, 10), (10, 0), (-5, 10), ("", 10), ("x", 10)])
async def test_stock_in_rejects_bad_quantities(services, grams, amount):
    drug = (await services.drugs.add("Gancao")).data
    source = (await services.sources.add("Tongrentang")).data

    result = await services.stock_ins.record(drug["id"], None, source["id"], None,
                                             grams, amount)

    assert not result.success
    assert await services.stock_ins.all() == []


async def test_stock_in_requires_known_drug_and_source(services):
    source = (await services.sources.add("Tongrentang")).data
    result = await services.stock_ins.record(99, "Ghost", source["id"], None, 10, 10)
    assert not result.success
    assert "not found" in result.message

    by_name = await services.stock_ins.record_for("Gancao", "Nobody", 10, 10)
    assert not by_name.success


# -------------------------
# FIFO costing
# -------------------------
async def test_estimate_single_batch(services, stock):
    await stock("Gancao", 100, 200)

    result = await services.stock_outs.estimate_cost("Gancao", 30)

    assert result.success
    assert result.data["total_amount"] == Decimal("60.00")
    assert len(result.data["allocations"]) == 1


async def test_estimate_spans_batches_oldest_first(services, stock):
    first = await stock("Gancao", 100, 200)
    second = await stock("Gancao", 200, 600)

    result = await services.stock_outs.estimate_cost("Gancao", 150)

    assert result.data["total_amount"] == Decimal("350.00")
    assert [(a["stock_in_id"], a["grams"]) for a in result.data["allocations"]] == [
        (first["id"], 100.0), (second["id"], 50.0)]
    # estimating writes nothing
    assert await services.stock_outs.all() == []


async def test_releases_deplete_batches(services, stock):
    first = await stock("Gancao", 100, 200)
    second = await stock("Gancao", 200, 600)

    one = await services.stock_outs.release("Gancao", "processing_loss", 80)
    assert one.data["total_amount"] == Decimal("160.00")

    two = await services.stock_outs.release("Gancao", "void", 50)
    assert two.data["total_amount"] == Decimal("130.00")
    assert [(a["stock_in_id"], a["grams"]) for a in two.data["allocations"]] == [
        (first["id"], 20.0), (second["id"], 30.0)]

    batches = {b["id"]: b["remaining_grams"] for b in
               await services.stock_ins.by_drug_oldest_first("Gancao")}
    assert batches == {first["id"]: Decimal("0"), second["id"]: Decimal("170")}
    assert await services.drugs.current_stock("Gancao") == Decimal("170")


async def test_release_more_than_on_hand_writes_nothing(services, stock):
    await stock("Gancao", 100, 200)

    result = await services.stock_outs.release("Gancao", "void", 100.5)

    assert not result.success
    assert result.message.startswith("Insufficient stock for Gancao")
    assert await services.stock_outs.all() == []
    assert await services.drugs.current_stock("Gancao") == Decimal("100")


async def test_release_without_any_stock_in(services):
    await services.drugs.add("Gancao")

    result = await services.stock_outs.estimate_cost("Gancao", 10)

    assert not result.success
    assert result.message == "No stock-in records for Gancao; cannot release"


async def test_release_validation(services, stock):
    await stock("Gancao", 100, 200)

    assert not (await services.stock_outs.release("", "void", 10)).success
    assert not (await services.stock_outs.release("Gancao", "stolen", 10)).success
    assert not (await services.stock_outs.release("Gancao", "void", 0)).success
    assert not (await services.stock_outs.release("Gancao", "void", -3)).success


async def test_only_prescription_use_feeds_the_estimate(services, stock):
    await stock("Gancao", 500, 500)

    await services.stock_outs.release("Gancao", "void", 40)
    await services.stock_outs.release("Gancao", "processing_loss", 40)
    assert (await services.drugs.get_by_name("Gancao"))["use_count"] == 0

    used = await services.stock_outs.release("Gancao", "prescription_use", 40,
                                             prescription_id=5)
    drug = await services.drugs.get_by_name("Gancao")
    assert drug["use_count"] == 1
    assert drug["current_estimate"] == Decimal("40")
    assert used.data["prescription_id"] == 5


async def test_undo_restores_batches_and_usage(services, stock):
    batch = await stock("Gancao", 100, 100)
    out = await services.stock_outs.release("Gancao", "prescription_use", 60)

    undone = await services.stock_outs.undo(out.data["id"])

    assert undone.success
    assert await services.stock_outs.all() == []
    assert (await services.store.get_by_id("stock_ins", batch["id"]))["remaining_grams"] == Decimal("100")
    drug = await services.drugs.get_by_name("Gancao")
    assert drug["use_count"] == 0
    assert drug["current_estimate"] == Decimal("10")

    assert not (await services.stock_outs.undo(out.data["id"])).success


async def test_update_stock_out(services, stock):
    await stock("Gancao", 100, 100)
    out = (await services.stock_outs.release("Gancao", "void", 10, remark="spilt")).data

    changed = await services.stock_outs.update(out["id"], {"remark": " dropped ",
                                                           "out_type": "processing_loss"})
    assert changed.success
    assert changed.data["remark"] == "dropped"
    assert changed.data["out_type"] == "processing_loss"
    assert changed.data["grams"] == out["grams"]

    refused = await services.stock_outs.update(out["id"], {"out_type": "prescription_use"})
    assert not refused.success


async def test_stock_out_queries(services, stock):
    await stock("Gancao", 100, 100)
    void = (await services.stock_outs.release("Gancao", "void", 10)).data
    loss = (await services.stock_outs.release("Gancao", "processing_loss", 10)).data

    start, end = void["out_time"], loss["out_time"]
    both = await services.stock_outs.by_time_and_type(start, end)
    assert [r["id"] for r in both] == [void["id"], loss["id"]]

    only_loss = await services.stock_outs.by_time_and_type(start, end, "processing_loss")
    assert [r["id"] for r in only_loss] == [loss["id"]]

    assert [r["id"] for r in await services.stock_outs.all()] == [loss["id"], void["id"]]


async def test_stock_in_stores_registry_names(services):
    drug = (await services.drugs.add("Gancao")).data
    source = (await services.sources.add("Tongrentang")).data

    wrong = await services.stock_ins.record(drug["id"], "gancao ", source["id"], None, 100, 100)
    assert not wrong.success
    assert "does not match" in wrong.message

    wrong_source = await services.stock_ins.record(drug["id"], None, source["id"],
                                                   "Other", 100, 100)
    assert not wrong_source.success
    assert await services.stock_ins.all() == []

    padded = await services.stock_ins.record(drug["id"], " Gancao ", source["id"],
                                             "Tongrentang", 100, 100)
    assert padded.success
    assert padded.data["drug_name"] == "Gancao"
    assert await services.drugs.current_stock("Gancao") == Decimal("100")
    assert (await services.stock_outs.estimate_cost("Gancao", 10)).success


async def test_failed_draw_down_leaves_no_stock_out(services, stock, monkeypatch):
    await stock("Gancao", 50, 50)
    await stock("Gancao", 50, 100)
    draw_down = services.stock_ins.draw_down
    calls = []

    async def failing_second_draw(stock_in_id, grams):
        calls.append(stock_in_id)
        if len(calls) == 2:
            raise StorageError("disk full", collection="stock_ins", action="update")
        return await draw_down(stock_in_id, grams)

    monkeypatch.setattr(services.stock_ins, "draw_down", failing_second_draw)

    result = await services.stock_outs.release("Gancao", "prescription_use", 80)

    assert not result.success
    assert result.message == "Stock out failed: disk full"
    assert await services.stock_outs.all() == []
    balances = [b["remaining_grams"] for b in
                await services.stock_ins.by_drug_oldest_first("Gancao")]
    assert balances == [Decimal("50"), Decimal("50")]
    assert await services.drugs.current_stock("Gancao") == Decimal("100")
    assert (await services.drugs.get_by_name("Gancao"))["use_count"] == 0
