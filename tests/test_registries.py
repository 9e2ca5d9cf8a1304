# tests/test_registries.py
from decimal import Decimal

from herbal_ledger.services.drug_registry import running_estimate


# -------------------------
# Sources
# -------------------------
async def test_add_source_trims_and_rejects_duplicates(services):
    first = await services.sources.add("  Tongrentang  ", "main supplier")
    assert first.success
    assert first.data["name"] == "Tongrentang"

    again = await services.sources.add("Tongrentang ")
    assert not again.success
    assert again.message == "Source 'Tongrentang' already exists"
    assert len(await services.sources.list()) == 1


async def test_add_source_requires_a_name(services):
    result = await services.sources.add("   ")
    assert not result.success
    assert "must not be empty" in result.message


async def test_update_and_clear_sources(services):
    a = (await services.sources.add("Alpha")).data
    await services.sources.add("Beta")

    clash = await services.sources.update(a["id"], {"name": "Beta"})
    assert not clash.success

    renamed = await services.sources.update(a["id"], {"name": "Gamma", "remark": " note "})
    assert renamed.success
    assert renamed.data["remark"] == "note"
    assert [s["name"] for s in await services.sources.list()] == ["Beta", "Gamma"]

    missing = await services.sources.update(999, {"remark": "x"})
    assert not missing.success

    assert (await services.sources.clear()).success
    assert await services.sources.list() == []


# -------------------------
# Drugs
# -------------------------
async def test_add_drug_defaults(services):
    result = await services.drugs.add("Gancao")
    assert result.success

    drug = result.data
    assert drug["storage_type"] == "sealed"
    assert drug["min_stock"] == Decimal("100")
    assert drug["current_estimate"] == drug["default_estimate"] == Decimal("10")
    assert drug["use_count"] == 0


async def test_add_drug_validation(services):
    assert not (await services.drugs.add("")).success
    assert not (await services.drugs.add("Gancao", storage_type="frozen")).success
    assert not (await services.drugs.add("Gancao", min_stock=-1)).success
    assert not (await services.drugs.add("Gancao", default_estimate=0)).success
    assert not (await services.drugs.add("Gancao", min_stock="lots")).success

    assert (await services.drugs.add("Gancao", storage_type="refrigerated")).success
    dup = await services.drugs.add(" Gancao")
    assert not dup.success
    assert "already exists" in dup.message


def test_running_estimate():
    assert running_estimate(Decimal("0"), 0, Decimal("10")) == Decimal("10")
    assert running_estimate(Decimal("40"), 2, Decimal("10")) == Decimal("20.00")
    assert running_estimate(Decimal("10"), 3, Decimal("10")) == Decimal("3.33")


async def test_record_use_moves_the_estimate(services):
    await services.drugs.add("Gancao", default_estimate=12)

    first = await services.drugs.record_use("Gancao", 30)
    assert first.data["use_count"] == 1
    assert first.data["current_estimate"] == Decimal("30")

    second = await services.drugs.record_use("Gancao", "10")
    assert second.data["use_count"] == 2
    assert second.data["current_estimate"] == Decimal("20")

    reverted = await services.drugs.revert_use("Gancao", 10)
    assert reverted.data["use_count"] == 1
    assert reverted.data["current_estimate"] == Decimal("30")

    back_to_zero = await services.drugs.revert_use("Gancao", 30)
    assert back_to_zero.data["use_count"] == 0
    assert back_to_zero.data["current_estimate"] == Decimal("12")


async def test_record_use_rejects_bad_input(services):
    await services.drugs.add("Gancao")
    assert not (await services.drugs.record_use("Gancao", 0)).success
    assert not (await services.drugs.record_use("Nope", 5)).success


async def test_current_stock_replays_the_ledgers(services, stock):
    assert await services.drugs.current_stock("Unknown") == Decimal("0")

    await stock("Gancao", 100, 200)
    await stock("Gancao", 50, 100)
    await services.stock_outs.release("Gancao", "void", 30)

    assert await services.drugs.current_stock("Gancao") == Decimal("120")


async def test_warning_list_is_inclusive(services, stock):
    await stock("AtLimit", 100, 100, min_stock=100)
    await stock("Above", 101, 100, min_stock=100)
    await services.drugs.add("Empty", min_stock=0)

    warned = {d["name"]: d["current_stock"] for d in await services.drugs.warning_list()}

    assert warned == {"AtLimit": Decimal("100"), "Empty": Decimal("0")}


async def test_rank_for_selection(services, stock):
    await stock("Often", 100, 100)
    await stock("Once", 100, 100)
    await stock("NeverBig", 500, 100)
    await stock("NeverSmall", 20, 100)

    await services.drugs.record_use("Often", 10)
    await services.drugs.record_use("Often", 10)
    await services.drugs.record_use("Once", 10)

    ranked = await services.drugs.rank_for_selection()
    assert [d["name"] for d in ranked] == ["Often", "Once", "NeverBig", "NeverSmall"]
    assert ranked[2]["remaining_uses"] == Decimal("50")

    without = await services.drugs.rank_for_selection(["Often", " Once"])
    assert [d["name"] for d in without] == ["NeverBig", "NeverSmall"]
