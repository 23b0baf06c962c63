import pytest

from kingmaker.config import KingmakerConfig, StorageConfig


def test_defaults():
    config = KingmakerConfig()
    assert config.storage.backend == "memory"
    assert config.plot.cost == 100
    assert config.strikes.damage == {"bomb": 5, "dynamite": 10}
    assert "shield" in config.inventory.item_kinds


def test_from_env_reads_prefixed_variables(monkeypatch):
    monkeypatch.setenv("KINGMAKER_ADMIN_IDS", "1, 2,")
    monkeypatch.setenv("KINGMAKER_ADMIN_ENABLE_AUDIT_LOGS", "no")
    monkeypatch.setenv("KINGMAKER_PLOT_COST", "250")
    monkeypatch.setenv("KINGMAKER_PLOT_WINDOW_MS", "30000")
    monkeypatch.setenv("KINGMAKER_PLOT_DEFENDER_ITEMS", '{"shield": 2}')
    monkeypatch.setenv("KINGMAKER_STRIKE_DAMAGE", '{"bomb": 7}')
    monkeypatch.setenv("KINGMAKER_ITEM_KINDS", "bomb, shield")
    monkeypatch.setenv("KINGMAKER_PROTECTION_DURATION_MS", "1000")

    config = KingmakerConfig.from_env()
    assert config.admin.admin_ids == {1, 2}
    assert config.admin.enable_audit_logs is False
    assert config.plot.cost == 250
    assert config.plot.window_ms == 30_000
    assert config.plot.defender_items == {"shield": 2}
    assert config.strikes.damage == {"bomb": 7}
    assert config.inventory.item_kinds == ("bomb", "shield")
    assert config.protection.duration_ms == 1_000


def test_from_env_without_overrides_matches_defaults(monkeypatch):
    for name in ("KINGMAKER_STRIKE_DAMAGE", "KINGMAKER_ITEM_KINDS", "KINGMAKER_PLOT_COST"):
        monkeypatch.delenv(name, raising=False)
    config = KingmakerConfig.from_env()
    assert config.strikes.damage == KingmakerConfig().strikes.damage
    assert config.inventory.item_kinds == KingmakerConfig().inventory.item_kinds


def test_bad_json_mapping(monkeypatch):
    monkeypatch.setenv("KINGMAKER_STRIKE_DAMAGE", "{bomb: 5")
    with pytest.raises(ValueError):
        KingmakerConfig.from_env()

    monkeypatch.setenv("KINGMAKER_STRIKE_DAMAGE", "[5]")
    with pytest.raises(ValueError):
        KingmakerConfig.from_env()


def test_sqlalchemy_backend_has_default_dsn():
    assert StorageConfig(backend="sqlalchemy").resolve_dsn().startswith("sqlite+aiosqlite://")
    assert StorageConfig().resolve_dsn() is None


def test_plot_block_item_can_be_disabled(monkeypatch):
    monkeypatch.delenv("KINGMAKER_PLOT_BLOCK_ITEM", raising=False)
    assert KingmakerConfig.from_env().plot.block_item == "kill_shield"

    monkeypatch.setenv("KINGMAKER_PLOT_BLOCK_ITEM", "")
    assert KingmakerConfig.from_env().plot.block_item is None
