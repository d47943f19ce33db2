import os
import sqlite3
import sys
import tempfile

from olms import crud
from olms.seed import main, seed_demo_data


def test_seed_only_into_empty_store(db_session):
    assert seed_demo_data(db_session) is True
    assert seed_demo_data(db_session) is False
    assert len(crud.list_users(db_session)) == 3
    assert len(crud.list_orders(db_session)) == 4
    for order in crud.list_orders(db_session):
        events = crud.get_order_timeline(db_session, order.id)
        assert [e.status for e in events] == [order.status]


def test_seed_cli_creates_file_database(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        db_path = os.path.join(tmp, "olms.db")
        monkeypatch.setattr(sys, "argv", ["olms.seed", "--database-url", f"sqlite:///{db_path}"])
        main()

        conn = sqlite3.connect(db_path)
        try:
            rows = conn.execute("SELECT email, role FROM users ORDER BY email").fetchall()
            assert rows == [
                ("admin@zenith.com", "admin"),
                ("customer@zenith.com", "customer"),
                ("factory@zenith.com", "factory"),
            ]
            assert conn.execute("SELECT COUNT(*) FROM order_timeline").fetchone()[0] == 4
        finally:
            conn.close()
