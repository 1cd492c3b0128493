from sqlalchemy import text
from sqlalchemy.pool import StaticPool

from database import build_engine, engine_options


def test_sqlite_waits_at_most_the_store_timeout():
    options = engine_options("sqlite:///./data/budget.db", timeout=3)
    assert options["connect_args"] == {"check_same_thread": False, "timeout": 3}
    assert "poolclass" not in options

    in_memory = engine_options("sqlite://", timeout=3)
    assert in_memory["poolclass"] is StaticPool


def test_postgres_sets_a_statement_timeout():
    options = engine_options("postgresql://budget@db/budget", timeout=2.5)
    assert options["connect_args"] == {"options": "-c statement_timeout=2500"}
    assert options["pool_timeout"] == 30


def test_build_engine_connects():
    eng = build_engine("sqlite://", timeout=1)
    with eng.connect() as conn:
        assert conn.execute(text("select 1")).scalar() == 1
    eng.dispose()
