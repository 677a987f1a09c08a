"""
Bring the live database in line with ``schema.py`` at startup.

Only additive changes are made: missing tables are created, missing columns
are added and (on PostgreSQL) missing named constraints are attached.
Nothing is ever dropped or narrowed.
"""
from typing import Any, Dict, List

from famous_since.utils.logging import get_logger

log = get_logger(__name__)

CONSTRAINT_KEYS = ("FOREIGN KEY", "UNIQUE")

TYPE_MAP = {
    "INTEGER": ("INTEGER", "INTEGER"),
    "TEXT": ("TEXT", "TEXT"),
    "FLOAT": ("REAL", "DOUBLE PRECISION"),
    "TIMESTAMP": ("TEXT", "TIMESTAMP"),
    "BOOL": ("INTEGER", "BOOLEAN"),
}


def column_sql(definition: str, postgres: bool) -> str:
    """Translate a portable column definition, e.g. ``FLOAT DEFAULT 0.0``."""
    base, _, rest = definition.partition(" ")
    mapped = TYPE_MAP.get(base.upper(), (base, base))[1 if postgres else 0]
    upper = rest.upper()
    if "AUTOINCREMENT" in upper:
        return "SERIAL PRIMARY KEY" if postgres else "INTEGER PRIMARY KEY AUTOINCREMENT"
    if "NOT NULL" in upper and "DEFAULT" not in upper and "PRIMARY KEY" not in upper and "UNIQUE" not in upper:
        rest += " DEFAULT ''" if mapped == "TEXT" else " DEFAULT 0"
    return f"{mapped} {rest}".strip()


def _foreign_keys(columns: Dict[str, Any]) -> List[Dict[str, str]]:
    fks = columns.get("FOREIGN KEY") or []
    return fks if isinstance(fks, list) else [fks]


def _unique_name(table: str, fields: List[str]) -> str:
    return f"uniq_{table}_{'_'.join(fields)}"


class SchemaSync:
    def __init__(self, cur: Any, postgres: bool) -> None:
        self.cur = cur
        self.postgres = postgres

    def _one(self, sqlite_query: str, postgres_query: str, params: tuple) -> bool:
        self.cur.execute(postgres_query if self.postgres else sqlite_query, params)
        return self.cur.fetchone() is not None

    def table_exists(self, table: str) -> bool:
        return self._one(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            "SELECT 1 FROM information_schema.tables WHERE table_name = %s AND table_schema = current_schema()",
            (table,),
        )

    def constraint_exists(self, table: str, name: str) -> bool:
        """PostgreSQL only; SQLite constraints are fixed at CREATE TABLE."""
        self.cur.execute(
            "SELECT 1 FROM information_schema.table_constraints "
            "WHERE table_name = %s AND constraint_name = %s AND table_schema = current_schema()",
            (table, name),
        )
        return self.cur.fetchone() is not None

    def columns(self, table: str) -> List[str]:
        if self.postgres:
            self.cur.execute(
                "SELECT column_name AS name FROM information_schema.columns "
                "WHERE table_name = %s AND table_schema = current_schema()",
                (table,),
            )
        else:
            self.cur.execute(f"PRAGMA table_info({table})")
        return [row["name"].lower() for row in self.cur.fetchall()]

    def table_sql(self, table: str, columns: Dict[str, Any]) -> str:
        parts = [
            f"{name} {column_sql(definition, self.postgres)}"
            for name, definition in columns.items() if name not in CONSTRAINT_KEYS
        ]
        if columns.get("UNIQUE"):
            fields = columns["UNIQUE"]
            parts.append(f"CONSTRAINT {_unique_name(table, fields)} UNIQUE ({', '.join(fields)})")
        for fk in _foreign_keys(columns):
            parts.append(
                f"CONSTRAINT fk_{table}_{fk['key']} FOREIGN KEY ({fk['key']}) "
                f"REFERENCES {fk['parent_table']}({fk['parent_key']}) {fk.get('instruction', '')}".rstrip()
            )
        return f"CREATE TABLE {table} ({', '.join(parts)})"

    def rebuild_sqlite_table(self, table: str, columns: Dict[str, Any], kept: List[str]) -> None:
        """SQLite cannot add UNIQUE columns in place, so copy into a fresh table."""
        temp = f"{table}__rebuild"
        self.cur.execute(self.table_sql(temp, columns))
        names = ", ".join(kept)
        self.cur.execute(f"INSERT INTO {temp} ({names}) SELECT {names} FROM {table}")
        self.cur.execute(f"DROP TABLE {table}")
        self.cur.execute(f"ALTER TABLE {temp} RENAME TO {table}")
        log.info("Rebuilt %s", table)

    def add_columns(self, table: str, columns: Dict[str, Any]) -> None:
        existing = self.columns(table)
        missing = [name for name in columns if name not in CONSTRAINT_KEYS and name.lower() not in existing]
        if not missing:
            return
        if not self.postgres and any("UNIQUE" in columns[name].upper() for name in missing):
            kept = [name for name in columns if name not in CONSTRAINT_KEYS and name.lower() in existing]
            self.rebuild_sqlite_table(table, columns, kept)
            return
        for name in missing:
            self.cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {column_sql(columns[name], self.postgres)}")
            log.info("Added column %s.%s", table, name)

    def add_constraints(self, table: str, columns: Dict[str, Any]) -> None:
        if not self.postgres:
            return
        fields = columns.get("UNIQUE")
        if fields and not self.constraint_exists(table, _unique_name(table, fields)):
            name = _unique_name(table, fields)
            self.cur.execute(f"ALTER TABLE {table} ADD CONSTRAINT {name} UNIQUE ({', '.join(fields)})")
            log.info("Added %s", name)
        for fk in _foreign_keys(columns):
            name = f"fk_{table}_{fk['key']}"
            if self.constraint_exists(table, name):
                continue
            self.cur.execute(
                f"ALTER TABLE {table} ADD CONSTRAINT {name} FOREIGN KEY ({fk['key']}) "
                f"REFERENCES {fk['parent_table']}({fk['parent_key']}) {fk.get('instruction', '')}".rstrip()
            )
            log.info("Added %s", name)

    def run(self, schema: List[Dict[str, Any]]) -> None:
        for table_def in schema:
            table, columns = table_def["table_name"], table_def["table_columns"]
            if not self.table_exists(table):
                self.cur.execute(self.table_sql(table, columns))
                log.info("Created %s", table)
                continue
            self.add_columns(table, columns)
            self.add_constraints(table, columns)


def setupDB(schema: List[Dict[str, Any]], db: Any) -> None:
    """Run the additive sync in one transaction; any failure rolls everything back."""
    if not schema:
        raise ValueError("Empty schema")
    postgres = db.backend == "postgresql"
    with db.connection(autocommit=False) as (conn, cur):
        if not postgres:
            cur.execute("PRAGMA foreign_keys = OFF")
        SchemaSync(cur, postgres).run(schema)
        conn.commit()
    log.info("Schema in sync (%d tables)", len(schema))
