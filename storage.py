# storage.py
import os
import sqlite3
from datetime import datetime

DEFAULT_DB_PATH = "compos.db"

class Storage:
    def __init__(self, db_path=None):
        db_path = db_path or os.environ.get("COMPOSCTL_DB", DEFAULT_DB_PATH)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

        # Dashboard reads while a poller writes
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA synchronous=NORMAL;")

        self._init_schema()

    def _init_schema(self):
        # One row per job-state observation
        self.conn.execute("""
        CREATE TABLE IF NOT EXISTS polls (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            run_id TEXT NOT NULL,
            job_id TEXT NOT NULL,
            phase TEXT NOT NULL,
            iteration INTEGER NOT NULL,
            exit_code INTEGER NOT NULL,
            state TEXT NOT NULL,
            observed_at TEXT NOT NULL
        )
        """)

        # Config table
        self.conn.execute("""
        CREATE TABLE IF NOT EXISTS config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """)

        self.conn.commit()

    # ---------------- Poll history ----------------
    def record_poll(self, record):
        self.conn.execute("""
            INSERT INTO polls (run_id, job_id, phase, iteration, exit_code, state, observed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (record.run_id, record.job_id, record.phase, record.iteration,
              record.exit_code, record.state, record.observed_at))
        self.conn.commit()

    def list_polls(self, run_id=None, limit=200):
        cur = self.conn.cursor()
        if run_id:
            cur.execute("SELECT * FROM polls WHERE run_id=? ORDER BY id LIMIT ?", (run_id, limit))
        else:
            cur.execute("SELECT * FROM polls ORDER BY id DESC LIMIT ?", (limit,))
        return cur.fetchall()

    def list_runs(self, limit=50):
        """Most recent runs first, with the last state each one observed."""
        cur = self.conn.cursor()
        cur.execute("""
            SELECT p.run_id, p.job_id, COUNT(*) AS polls,
                   MIN(p.observed_at) AS started_at, MAX(p.observed_at) AS last_seen_at,
                   (SELECT state FROM polls q WHERE q.run_id = p.run_id ORDER BY q.id DESC LIMIT 1) AS last_state
            FROM polls p
            GROUP BY p.run_id, p.job_id
            ORDER BY MAX(p.id) DESC
            LIMIT ?
        """, (limit,))
        return cur.fetchall()

    # ---------------- Config helpers ----------------
    def get_config(self, key, default=None):
        cur = self.conn.cursor()
        cur.execute("SELECT value FROM config WHERE key=?", (key,))
        row = cur.fetchone()
        return row["value"] if row else default

    def set_config(self, key, value):
        now = datetime.utcnow().isoformat()
        self.conn.execute("""
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
        """, (key, str(value), now))
        self.conn.commit()

    def list_config(self):
        cur = self.conn.cursor()
        cur.execute("SELECT key, value, updated_at FROM config ORDER BY key")
        return cur.fetchall()
