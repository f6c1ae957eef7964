# src/ztoken/runtime/sqlite_store.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    raw = str(os.environ.get(name, "")).strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


class SqliteDB:
    """SQLite manager for token state.

    - single durable DB file: token snapshot + mint log
    - cross-thread safe by never sharing connections
    - BEGIN IMMEDIATE with bounded retry so only one writer commits at a time
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    def ensure_parent_dir(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()
        connect_timeout_s = float(_env_int("ZTOKEN_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0

        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # BEGIN/COMMIT managed here
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA journal_mode=WAL;")
        con.execute("PRAGMA synchronous=FULL;")
        con.execute(f"PRAGMA busy_timeout={int(connect_timeout_s * 1000)};")
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS token_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  last_mint_time INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS mint_log (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  minted_at INTEGER NOT NULL,
                  previous_mint_time INTEGER NOT NULL,
                  amount TEXT NOT NULL,
                  beneficiary TEXT NOT NULL,
                  start_year INTEGER,
                  end_year INTEGER
                );
                """
            )
            con.execute("CREATE INDEX IF NOT EXISTS idx_mint_log_minted_at ON mint_log(minted_at);")
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS transfer_log (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  kind TEXT NOT NULL,
                  sender TEXT NOT NULL,
                  receiver TEXT NOT NULL,
                  amount TEXT NOT NULL,
                  created_ts_ms INTEGER NOT NULL
                );
                """
            )

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            elif str(row["value"]) != str(self.SCHEMA_VERSION):
                raise RuntimeError(
                    f"sqlite schema_version mismatch: have={row['value']} want={self.SCHEMA_VERSION}. "
                    "Refuse to start to avoid corrupting data."
                )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Write transaction with bounded, jittered retry on writer-lock contention."""
        deadline_ts = _now_ms() + max(250, _env_int("ZTOKEN_SQLITE_WRITE_DEADLINE_MS", 30_000))
        base_sleep = 0.005
        max_sleep = 0.25

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
                    time.sleep(sleep_s * (0.5 + random.random()))
                    attempt += 1

            try:
                yield con
                con.execute("COMMIT;")
            except BaseException:
                con.execute("ROLLBACK;")
                raise


class TokenStateStore:
    """Token snapshot (single row) plus append-only mint and transfer logs."""

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM token_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM token_state WHERE id=1;").fetchone()
        if row is None:
            raise FileNotFoundError("sqlite token_state is missing")
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("token_state is not a JSON object")
        return st

    def _upsert(self, con: sqlite3.Connection, st: Json) -> None:
        con.execute(
            """
            INSERT INTO token_state(id, last_mint_time, state_json, updated_ts_ms)
            VALUES(1, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              last_mint_time=excluded.last_mint_time,
              state_json=excluded.state_json,
              updated_ts_ms=excluded.updated_ts_ms;
            """,
            (int(st.get("last_mint_time", 0)), _canon_json(st), _now_ms()),
        )

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("token state write expects dict")
        with self._db.write_tx() as con:
            self._upsert(con, st)

    def record_mint(self, st: Json, receipt: Json) -> None:
        """Persist the post-mint snapshot and its log row in one transaction."""
        terms = receipt.get("terms") if isinstance(receipt.get("terms"), dict) else {}
        with self._db.write_tx() as con:
            self._upsert(con, st)
            con.execute(
                """
                INSERT INTO mint_log(minted_at, previous_mint_time, amount, beneficiary, start_year, end_year)
                VALUES(?, ?, ?, ?, ?, ?);
                """,
                (
                    int(receipt["last_mint_time"]),
                    int(receipt["previous_mint_time"]),
                    str(int(receipt["amount"])),
                    str(receipt["beneficiary"]),
                    terms.get("start_year"),
                    terms.get("end_year"),
                ),
            )

    def mint_history(self, limit: int = 100) -> List[Json]:
        lim = max(1, min(int(limit), 1000))
        with self._db.connection() as con:
            rows = con.execute(
                "SELECT minted_at, previous_mint_time, amount, beneficiary, start_year, end_year "
                "FROM mint_log ORDER BY id DESC LIMIT ?;",
                (lim,),
            ).fetchall()
        return [
            {
                "minted_at": int(r["minted_at"]),
                "previous_mint_time": int(r["previous_mint_time"]),
                "amount": str(r["amount"]),
                "beneficiary": str(r["beneficiary"]),
                "start_year": r["start_year"],
                "end_year": r["end_year"],
            }
            for r in rows
        ]

    def record_transfer(self, st: Json, receipt: Json) -> None:
        """Persist the post-transfer snapshot and the receipt's events in one transaction."""
        kind = str(receipt.get("applied") or "TRANSFER")
        ts = _now_ms()
        with self._db.write_tx() as con:
            self._upsert(con, st)
            for ev in receipt.get("events") or []:
                con.execute(
                    """
                    INSERT INTO transfer_log(kind, sender, receiver, amount, created_ts_ms)
                    VALUES(?, ?, ?, ?, ?);
                    """,
                    (kind, str(ev["from"]), str(ev["to"]), str(int(ev["amount"])), ts),
                )

    def transfer_history(self, limit: int = 100) -> List[Json]:
        lim = max(1, min(int(limit), 1000))
        with self._db.connection() as con:
            rows = con.execute(
                "SELECT id, kind, sender, receiver, amount FROM transfer_log ORDER BY id DESC LIMIT ?;",
                (lim,),
            ).fetchall()
        return [
            {
                "id": int(r["id"]),
                "kind": str(r["kind"]),
                "from": str(r["sender"]),
                "to": str(r["receiver"]),
                "amount": str(r["amount"]),
            }
            for r in rows
        ]
