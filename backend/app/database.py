from sqlalchemy import create_engine, text, event
from sqlalchemy.orm import sessionmaker, declarative_base
from app.config import get_settings
import logging

logger = logging.getLogger(__name__)
settings = get_settings()

db_url = settings.database_url
is_sqlite = db_url.startswith("sqlite")

engine = create_engine(
    db_url,
    connect_args={"check_same_thread": False} if is_sqlite else {},
)


# ON DELETE CASCADE on country_visits / visa_entries depends on this
if is_sqlite:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _sqlite_col_type(col) -> str:
    """Convert a SQLAlchemy column type to a SQLite type string."""
    type_name = type(col.type).__name__
    type_map = {
        "Integer": "INTEGER",
        "Float": "REAL",
        "Boolean": "BOOLEAN",
        "Date": "DATE",
        "DateTime": "DATETIME",
        "Text": "TEXT",
        "JSON": "JSON",
        "String": f"VARCHAR({col.type.length})" if getattr(col.type, "length", None) else "TEXT",
    }
    return type_map.get(type_name, "TEXT")


def _sqlite_default(col) -> str:
    """Extract a DEFAULT clause from a SQLAlchemy column, or empty string."""
    if col.default is None or col.default.arg is None:
        return ""
    val = col.default.arg
    if callable(val):
        return ""
    if isinstance(val, bool):
        return f" DEFAULT {1 if val else 0}"
    if isinstance(val, (int, float)):
        return f" DEFAULT {val}"
    if isinstance(val, str):
        escaped = val.replace("'", "''")
        return f" DEFAULT '{escaped}'"
    return ""


def ensure_sqlite_columns():
    """Add columns that exist on the models but not yet in the SQLite file.

    Lets a local database created by an older build keep working without
    running Alembic. PostgreSQL deployments use the migrations instead.
    """
    if not is_sqlite:
        return

    added = 0
    with engine.connect() as conn:
        for table in Base.metadata.sorted_tables:
            result = conn.execute(text(f"PRAGMA table_info({table.name})")).fetchall()
            existing_cols = {r[1] for r in result}

            for col in table.columns:
                if col.name in existing_cols:
                    continue

                col_type = _sqlite_col_type(col)
                default = _sqlite_default(col)
                # NOT NULL without DEFAULT is invalid for ALTER TABLE ADD COLUMN in SQLite
                nullable = "" if col.nullable or not default else " NOT NULL"

                ddl = f"ALTER TABLE {table.name} ADD COLUMN {col.name} {col_type}{nullable}{default}"
                conn.execute(text(ddl))
                logger.info(f"Added column {table.name}.{col.name}")
                added += 1

        conn.commit()

    if added:
        logger.info(f"Schema migration: added {added} column(s)")
