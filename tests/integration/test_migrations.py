"""Alembic migrations build the same schema as the ORM models."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

MIGRATIONS = Path(__file__).resolve().parents[2] / "backend" / "app" / "db" / "alembic"


def _config(url: str) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS))
    config.set_main_option("sqlalchemy.url", url)
    return config


def test_upgrade_creates_itinerary_tables(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'planner.db'}"

    command.upgrade(_config(url), "head")

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert {"itinerary", "travel_node"} <= set(inspector.get_table_names())
        columns = {c["name"] for c in inspector.get_columns("travel_node")}
        assert {"node_order", "node_status", "parent_node_id", "is_lit"} <= columns
        unique = inspector.get_unique_constraints("travel_node")
        assert any(
            c["column_names"] == ["itinerary_id", "day_index", "node_order"] for c in unique
        )
    finally:
        engine.dispose()


def test_downgrade_drops_tables(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'planner.db'}"
    config = _config(url)

    command.upgrade(config, "head")
    command.downgrade(config, "base")

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
        assert not {"itinerary", "travel_node"} & tables
    finally:
        engine.dispose()
