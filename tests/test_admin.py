import pytest

from kingmaker.admin import build_admin_service
from kingmaker.config import AdminConfig
from kingmaker.domain.exceptions import InvalidAmount, InvalidItemKind, NotAuthorized
from kingmaker.testing import app_fixture


@pytest.fixture()
def app():
    return app_fixture()


@pytest.mark.asyncio()
async def test_grant_points_records_and_audits(app):
    admin = build_admin_service(app)
    tx = await admin.grant_points(1, 50, granted_by=99, reason="Event prize")
    assert tx.counterparty_id == 99
    assert await app.ledger.balance(1) == 50

    await admin.grant_points(1, -20, granted_by=99, reason="Spam fine")
    assert await app.ledger.balance(1) == 30

    actions = [(action, payload["amount"]) for _, action, payload in app.audit_store.dump()]
    assert actions == [("grant_points", 50), ("grant_points", -20)]
    assert "timestamp" in app.audit_store.dump()[0][2]


@pytest.mark.asyncio()
async def test_grant_points_rejects_zero(app):
    with pytest.raises(InvalidAmount):
        await build_admin_service(app).grant_points(1, 0)
    assert app.audit_store.dump() == []


@pytest.mark.asyncio()
async def test_grant_items(app):
    admin = build_admin_service(app)
    assert await admin.grant_items(1, "bomb", 3, granted_by=99) == 3
    with pytest.raises(InvalidItemKind):
        await admin.grant_items(1, "laser", 1)
    assert [entry[1] for entry in app.audit_store.dump()] == ["grant_items"]


@pytest.mark.asyncio()
async def test_protect_and_unprotect(app):
    admin = build_admin_service(app)
    protection = await admin.protect(5, granted_by=99, duration_ms=1_000)
    assert protection.expires_at == app.clock.at(1_000)
    assert app.protections.is_protected(5)

    assert await admin.unprotect(5) is True
    assert not app.protections.is_protected(5)
    assert await admin.unprotect(5) is False


@pytest.mark.asyncio()
async def test_cancel_plot_refunds_and_publishes(app):
    seen = []

    async def listener(payload):
        seen.append(dict(payload))

    app.event_bus.subscribe("admin.plot.cancelled", listener)
    await app.ledger.record(1, 100)
    await app.plots.launch(-7, 1, 2)

    admin = build_admin_service(app)
    attempt = await admin.cancel_plot(-7)
    assert attempt.initiator_id == 1
    assert await app.ledger.balance(1) == 100
    assert await admin.cancel_plot(-7) is None
    assert seen == [{"arena_id": -7, "found": True}, {"arena_id": -7, "found": False}]


@pytest.mark.asyncio()
async def test_audit_can_be_disabled():
    app = app_fixture(admin=AdminConfig(enable_audit_logs=False))
    await build_admin_service(app).grant_points(1, 10)
    assert app.audit_store.dump() == []


@pytest.mark.asyncio()
async def test_only_listed_admins_may_act():
    app = app_fixture(admin=AdminConfig(admin_ids={99}))
    admin = build_admin_service(app)

    with pytest.raises(NotAuthorized) as excinfo:
        await admin.grant_points(1, 50, granted_by=7)
    assert excinfo.value.actor_id == 7
    with pytest.raises(NotAuthorized):
        await admin.grant_items(1, "bomb", 1)
    with pytest.raises(NotAuthorized):
        await admin.cancel_plot(-7, cancelled_by=7)
    assert await app.ledger.balance(1) == 0
    assert app.audit_store.dump() == []

    await admin.grant_points(1, 50, granted_by=99)
    assert await admin.unprotect(1, revoked_by=99) is False
    assert admin.is_admin(99)
    assert not admin.is_admin(None)


def test_expired_protections_are_cleaned_up(app):
    app.protections.activate(1, duration_ms=1_000)
    app.protections.activate(2, duration_ms=5_000)
    app.clock.advance(1_000)

    assert app.protections.cleanup_expired() == 1
    assert app.protections.get(1) is None
    assert app.protections.remaining_ms(2) == 4_000
