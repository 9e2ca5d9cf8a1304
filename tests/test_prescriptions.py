# tests/test_prescriptions.py
from decimal import Decimal

from herbal_ledger.schemas.common import ServiceResult

LOG = {"urine": {"color": "yellow"}, "sleep": {"hours": 6}}


async def test_submit_happy_path(services, stock):
    await stock("Gancao", 200, 100)
    await stock("Huangqi", 100, 150)

    result = await services.prescriptions.submit(
        [{"name": "Gancao", "grams": 100}, {"name": "Huangqi", "grams": "50"}], LOG)

    assert result.success, result.message
    assert result.message == "Prescription submitted; diagnosis log attached"
    rx = result.data
    assert rx["total_grams"] == Decimal("150")
    assert rx["total_amount"] == Decimal("125.00")
    assert [line["amount"] for line in rx["drug_list"]] == [50.0, 75.0]

    log = await services.logs.by_prescription_id(rx["id"])
    assert rx["diagnosis_log_id"] == log["id"]
    assert log["urine"] == {"color": "yellow"}
    assert log["stool"] == {}

    outs = await services.stock_outs.by_prescription(rx["id"])
    assert sorted(o["drug_name"] for o in outs) == ["Gancao", "Huangqi"]
    assert all(o["out_type"] == "prescription_use" for o in outs)
    assert (await services.drugs.get_by_name("Gancao"))["use_count"] == 1


async def test_submit_rejects_empty_list(services):
    for empty in (None, []):
        result = await services.prescriptions.submit(empty, LOG)
        assert not result.success
        assert result.message == "Prescription drug list must not be empty"
    assert await services.store.get_all("prescriptions") == []


async def test_costing_failure_writes_nothing(services, stock):
    await stock("Gancao", 200, 100)
    await stock("Huangqi", 10, 15)

    result = await services.prescriptions.submit(
        [{"name": "Gancao", "grams": 100}, {"name": "Huangqi", "grams": 50}], LOG)

    assert not result.success
    assert result.message.startswith("Huangqi: Insufficient stock")
    assert await services.store.get_all("prescriptions") == []
    assert await services.stock_outs.all() == []


async def test_duplicate_lines_are_rejected(services, stock):
    await stock("Gancao", 200, 100)

    result = await services.prescriptions.submit(
        [{"name": "Gancao", "grams": 10}, {"name": " Gancao", "grams": 20}], LOG)

    assert not result.success
    assert "more than once" in result.message


async def test_release_failure_rolls_back_earlier_lines(services, stock, monkeypatch):
    gancao = await stock("Gancao", 200, 100)
    await stock("Huangqi", 100, 150)
    release = services.stock_outs.release

    async def flaky_release(drug_name, *args, **kwargs):
        if drug_name == "Huangqi":
            return ServiceResult.fail("disk full")
        return await release(drug_name, *args, **kwargs)

    monkeypatch.setattr(services.stock_outs, "release", flaky_release)

    result = await services.prescriptions.submit(
        [{"name": "Gancao", "grams": 100}, {"name": "Huangqi", "grams": 50}], LOG)

    assert not result.success
    assert result.message == "Huangqi release failed: disk full (rolled back)"
    assert await services.store.get_all("prescriptions") == []
    assert await services.stock_outs.all() == []
    assert await services.store.get_all("diagnosis_logs") == []

    batch = await services.store.get_by_id("stock_ins", gancao["id"])
    assert batch["remaining_grams"] == Decimal("200")
    drug = await services.drugs.get_by_name("Gancao")
    assert drug["use_count"] == 0
    assert drug["total_used_grams"] == Decimal("0")


async def test_log_failure_rolls_back_everything(services, stock, monkeypatch):
    await stock("Gancao", 200, 100)

    async def broken_add(log_info, prescription_id):
        return ServiceResult.fail("log store offline")

    monkeypatch.setattr(services.logs, "add", broken_add)

    result = await services.prescriptions.submit([{"name": "Gancao", "grams": 100}], LOG)

    assert not result.success
    assert result.message == "Diagnosis log attach failed: log store offline (rolled back)"
    assert await services.store.get_all("prescriptions") == []
    assert await services.drugs.current_stock("Gancao") == Decimal("200")


async def test_second_log_for_same_prescription_is_refused(services, stock):
    await stock("Gancao", 200, 100)
    rx = (await services.prescriptions.submit([{"name": "Gancao", "grams": 10}], LOG)).data

    again = await services.logs.add({"other": {"note": "x"}}, rx["id"])
    assert not again.success
    assert "already has a diagnosis log" in again.message

    assert not (await services.logs.add(LOG, None)).success
    assert not (await services.logs.add(LOG, 999)).success


async def test_last_prescription_and_last_log(services, stock):
    assert await services.prescriptions.last_prescription() is None
    assert await services.logs.last_log() is None

    await stock("Gancao", 200, 100)
    await services.prescriptions.submit([{"name": "Gancao", "grams": 10}], LOG)
    second = (await services.prescriptions.submit(
        [{"name": "Gancao", "grams": 20}], {"sleep": {"hours": 8}})).data

    last = await services.prescriptions.last_prescription()
    assert last["id"] == second["id"]
    assert last["drug_list"][0]["grams"] == 20.0
    assert (await services.logs.last_log())["sleep"] == {"hours": 8}


async def test_free_form_log_groups_are_kept(services, stock):
    await stock("Gancao", 200, 100)

    result = await services.prescriptions.submit(
        [{"name": "Gancao", "grams": 10}],
        {"other": "slept badly", "stool": ["loose", "twice"]})

    assert result.success, result.message
    log = await services.logs.by_prescription_id(result.data["id"])
    assert log["other"] == "slept badly"
    assert log["stool"] == ["loose", "twice"]
    assert log["urine"] == {}


async def test_malformed_log_rolls_back(services, stock):
    await stock("Gancao", 200, 100)

    result = await services.prescriptions.submit([{"name": "Gancao", "grams": 10}],
                                                 ["not", "a", "log"])

    assert not result.success
    assert result.message.startswith("Diagnosis log attach failed")
    assert result.message.endswith("(rolled back)")
    assert await services.store.get_all("prescriptions") == []
    assert await services.stock_outs.all() == []


async def test_unexpected_error_still_rolls_back(services, stock, monkeypatch):
    gancao = await stock("Gancao", 200, 100)

    async def crashing_add(log_info, prescription_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(services.logs, "add", crashing_add)

    result = await services.prescriptions.submit([{"name": "Gancao", "grams": 10}], LOG)

    assert not result.success
    assert result.message == "Submit prescription failed: boom (rolled back)"
    assert await services.store.get_all("prescriptions") == []
    assert await services.stock_outs.all() == []
    batch = await services.store.get_by_id("stock_ins", gancao["id"])
    assert batch["remaining_grams"] == Decimal("200")
    assert (await services.drugs.get_by_name("Gancao"))["use_count"] == 0


async def test_line_that_is_not_an_object_is_rejected(services, stock):
    await stock("Gancao", 200, 100)

    result = await services.prescriptions.submit([("Gancao", 10)], LOG)

    assert not result.success
    assert result.message == "Each prescription line needs a name and grams"
    assert await services.store.get_all("prescriptions") == []
