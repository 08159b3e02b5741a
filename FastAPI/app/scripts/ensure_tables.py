"""
Create any missing messaging tables (users, jobs, applications, connections,
conversations, chat_messages, notifications) without touching existing data.

    python -m app.scripts.ensure_tables
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from app.database import ensure_tables_exist
from app.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main():
    setup_logging()
    created = ensure_tables_exist()
    logger.info("DB table check complete: %d table(s) created.", len(created))


if __name__ == "__main__":
    main()
