#!/usr/bin/env python3
"""Check that the FormChat tables exist in Supabase."""
import sys
from pathlib import Path

from formchat.db.supabase_client import get_supabase

SCHEMA_FILE = Path(__file__).parent / "migrations" / "0001_formchat_schema.sql"
TABLES = ["forms", "prompts", "responses", "settings"]


def run_migration():
    supabase = get_supabase()

    missing = []
    for table in TABLES:
        try:
            supabase.table(table).select("*").limit(1).execute()
            print(f"ok       {table}")
        except Exception as e:
            print(f"missing  {table} ({e})")
            missing.append(table)

    if missing:
        print("Run this SQL in your Supabase SQL editor:")
        print(SCHEMA_FILE.read_text())
        sys.exit(1)


if __name__ == "__main__":
    run_migration()
