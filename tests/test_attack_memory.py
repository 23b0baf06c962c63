import pytest

from kingmaker.domain.attacks import AttackMemory
from kingmaker.domain.exceptions import AttackNotFound, InvalidAmount
from kingmaker.testing import app_fixture

TARGET = 10
ATTACKER = 20


@pytest.fixture()
def app():
    return app_fixture()


async def land_hit(app, amount, attacker=ATTACKER, window_ms=None):
    await app.ledger.redeem(TARGET, amount, counterparty_id=attacker)
    return app.attacks.record_attack(TARGET, attacker, "bomb", amount, "Bomb", window_ms)


@pytest.mark.asyncio()
async def test_consume_restores_exactly_the_loss(app):
    await app.ledger.record(TARGET, 100)
    await land_hit(app, 30)
    assert await app.ledger.balance(TARGET) == 70

    record = await app.attacks.consume_if_present(TARGET)
    assert record.amount_at_risk == 30
    assert await app.ledger.balance(TARGET) == 100
    latest = (await app.ledger.history(TARGET, limit=1))[0]
    assert latest.reason == "Blocked bomb"
    assert latest.counterparty_id == ATTACKER

    with pytest.raises(AttackNotFound):
        await app.attacks.consume_if_present(TARGET)
    assert await app.ledger.balance(TARGET) == 100


@pytest.mark.asyncio()
async def test_new_attack_overwrites_previous(app):
    await app.ledger.record(TARGET, 100)
    await land_hit(app, 10, attacker=ATTACKER)
    await land_hit(app, 20, attacker=ATTACKER + 1)

    assert app.attacks.peek(TARGET).attacker_id == ATTACKER + 1
    assert len(app.attacks) == 1
    assert len(app.scheduler.pending()) == 1

    await app.attacks.consume_if_present(TARGET)
    assert await app.ledger.balance(TARGET) == 90


@pytest.mark.asyncio()
async def test_record_expires_when_timer_fires(app):
    await app.ledger.record(TARGET, 100)
    await land_hit(app, 30, window_ms=100)

    await app.scheduler.advance(100)
    assert len(app.attacks) == 0
    with pytest.raises(AttackNotFound):
        await app.attacks.consume_if_present(TARGET)
    assert await app.ledger.balance(TARGET) == 70


@pytest.mark.asyncio()
async def test_window_is_checked_even_if_timer_has_not_fired(app):
    await app.ledger.record(TARGET, 100)
    await land_hit(app, 30, window_ms=100)

    app.clock.advance(150)
    assert app.attacks.peek(TARGET) is None
    with pytest.raises(AttackNotFound):
        await app.attacks.consume_if_present(TARGET)
    assert await app.ledger.balance(TARGET) == 70


@pytest.mark.asyncio()
async def test_remaining_window(app):
    await app.ledger.record(TARGET, 100)
    await land_hit(app, 5, window_ms=100)
    app.clock.advance(40)
    assert app.attacks.remaining_window(TARGET) == 60
    assert app.attacks.remaining_window(TARGET + 1) == 0


def test_cleanup_expired_drops_dead_records(app):
    app.attacks.record_attack(TARGET, ATTACKER, "bomb", 5, window_ms=100)
    app.attacks.record_attack(TARGET + 1, ATTACKER, "dynamite", 10, window_ms=500)
    app.clock.advance(150)

    assert app.attacks.cleanup_expired() == 1
    assert len(app.attacks) == 1
    assert app.attacks.peek(TARGET + 1) is not None


def test_record_attack_validation(app):
    with pytest.raises(InvalidAmount):
        app.attacks.record_attack(TARGET, ATTACKER, "bomb", 0)
    with pytest.raises(InvalidAmount):
        app.attacks.record_attack(TARGET, ATTACKER, "bomb", 5, window_ms=0)


class FailingLedger:
    async def record(self, *args, **kwargs):
        raise RuntimeError("ledger offline")


@pytest.mark.asyncio()
async def test_failed_credit_keeps_record_consumable(app):
    memory = AttackMemory(app.scheduler, ledger=FailingLedger(), clock=app.clock)
    memory.record_attack(TARGET, ATTACKER, "bomb", 5, window_ms=100)

    with pytest.raises(RuntimeError):
        await memory.consume_if_present(TARGET)
    assert memory.peek(TARGET) is not None

    await app.scheduler.advance(100)
    assert memory.peek(TARGET) is None
    assert len(memory) == 0


class BrokenScheduler:
    def schedule(self, delay_ms, callback):
        raise RuntimeError("no running event loop")


def test_failed_schedule_stores_nothing(app):
    memory = AttackMemory(BrokenScheduler(), clock=app.clock)
    with pytest.raises(RuntimeError):
        memory.record_attack(TARGET, ATTACKER, "bomb", 5, window_ms=100)
    assert memory.peek(TARGET) is None
    assert len(memory) == 0
