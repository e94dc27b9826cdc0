"""
Defines the database schema for sm2deck using a SQL string constant.
This keeps the schema definition separate from the database connection and
operation logic.
"""

# `position` records insertion order; it breaks ties between cards due at the
# same instant. `interval` is a DuckDB type keyword, hence `interval_days`.
DB_SCHEMA_SQL = """
    CREATE SEQUENCE IF NOT EXISTS card_seq;
    CREATE SEQUENCE IF NOT EXISTS review_seq;

    CREATE TABLE IF NOT EXISTS cards (
        uuid UUID PRIMARY KEY,
        position BIGINT NOT NULL DEFAULT nextval('card_seq'),
        front VARCHAR NOT NULL,
        back VARCHAR NOT NULL,
        added_at TIMESTAMP WITH TIME ZONE NOT NULL,
        modified_at TIMESTAMP WITH TIME ZONE NOT NULL,
        due_at TIMESTAMP WITH TIME ZONE NOT NULL,
        interval_days INTEGER NOT NULL DEFAULT 0 CHECK (interval_days >= 0),
        repetition INTEGER NOT NULL DEFAULT 0 CHECK (repetition >= 0),
        ease_factor DOUBLE NOT NULL DEFAULT 2.5 CHECK (ease_factor >= 1.3),
        last_review_id INTEGER
    );

    CREATE TABLE IF NOT EXISTS reviews (
        review_id INTEGER PRIMARY KEY DEFAULT nextval('review_seq'),
        card_uuid UUID NOT NULL,
        ts TIMESTAMP WITH TIME ZONE NOT NULL,
        grade INTEGER NOT NULL CHECK (grade >= 0 AND grade <= 10),
        interval_days_before INTEGER,
        repetition_before INTEGER,
        ease_factor_before DOUBLE,
        interval_days INTEGER NOT NULL,
        repetition INTEGER NOT NULL,
        ease_factor DOUBLE NOT NULL,
        next_due TIMESTAMP WITH TIME ZONE NOT NULL,
        review_type VARCHAR
    );

    CREATE INDEX IF NOT EXISTS idx_reviews_card_uuid ON reviews (card_uuid);
    CREATE INDEX IF NOT EXISTS idx_reviews_ts ON reviews (ts);
"""
