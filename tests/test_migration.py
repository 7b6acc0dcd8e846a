import os
import sqlite3
import tempfile

from catalog.auth import verify_password
from migration.migration_hash_passwords import migrate


def create_legacy_db(path: str):
    conn = sqlite3.connect(path)
    try:
        conn.execute(
            "CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT UNIQUE NOT NULL, "
            "password TEXT NOT NULL, is_admin BOOLEAN DEFAULT 0)"
        )
        # Seed data
        conn.execute("INSERT INTO users (email, password, is_admin) VALUES ('admin@admin.com', 'admin123', 1)")
        conn.execute("INSERT INTO users (email, password) VALUES ('bob@shop.io', 'hunter22')")
        conn.commit()
    finally:
        conn.close()


def test_migration_hashes_and_drops_plaintext():
    with tempfile.TemporaryDirectory() as tmp:
        db_path = os.path.join(tmp, "legacy.db")
        create_legacy_db(db_path)

        assert migrate(db_path) == 2
        # second run is a no-op
        assert migrate(db_path) == 0

        conn = sqlite3.connect(db_path)
        try:
            cols = [r[1] for r in conn.execute("PRAGMA table_info(users)").fetchall()]
            assert "password" not in cols
            assert "password_hash" in cols

            rows = conn.execute("SELECT email, password_hash FROM users ORDER BY id").fetchall()
            assert verify_password("admin123", rows[0][1])
            assert verify_password("hunter22", rows[1][1])
            assert rows[1][1] != "hunter22"
        finally:
            conn.close()
