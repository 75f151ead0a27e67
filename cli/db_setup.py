"""
Quotes API database setup.

Creates the schema from the ORM models and optionally loads demo data.
The target database is DATABASE_URL_APP (PostgreSQL or SQLite).

Usage:
    quotes-db init              # Create tables
    quotes-db init --demo       # Create tables and load demo quotes
    quotes-db reset --yes       # Drop and recreate tables
    quotes-db seed --clean-first
    quotes-db verify            # Print row counts
"""

from __future__ import annotations

import argparse
import asyncio

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.config import settings, to_async_url
from app.core.db import create_fresh_async_engine
from app.db.models import Base, Category, Quote, Quotee


# ANSI colors for terminal output
class Colors:
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    END = "\033[0m"


def log_info(msg: str) -> None:
    print(f"{Colors.BLUE}[INFO]{Colors.END} {msg}")


def log_success(msg: str) -> None:
    print(f"{Colors.GREEN}[OK]{Colors.END} {msg}")


def log_warning(msg: str) -> None:
    print(f"{Colors.YELLOW}[WARN]{Colors.END} {msg}")


def log_error(msg: str) -> None:
    print(f"{Colors.RED}[ERROR]{Colors.END} {msg}")


DEMO_QUOTEES = ["Ada Lovelace", "Alan Turing", "Grace Hopper"]
DEMO_CATEGORIES = ["Computing", "Mathematics"]

# (content, quotee index, category index, keywords)
DEMO_QUOTES = [
    (
        "The Analytical Engine weaves algebraic patterns just as the Jacquard loom weaves flowers and leaves.",
        0,
        0,
        "engine loom patterns",
    ),
    (
        "We can only see a short distance ahead, but we can see plenty there that needs to be done.",
        1,
        0,
        "future work",
    ),
    (
        "Mathematical reasoning may be regarded rather schematically as the exercise of a combination of two faculties.",
        1,
        1,
        "reasoning intuition ingenuity",
    ),
    (
        "The most dangerous phrase in the language is: we've always done it this way.",
        2,
        0,
        "change habit",
    ),
]

# Delete order respecting foreign keys
_DATA_TABLES = (Quote, Quotee, Category)


async def create_schema(engine: AsyncEngine, *, drop_first: bool = False) -> None:
    async with engine.begin() as conn:
        if drop_first:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def seed_demo_data(session: AsyncSession, *, clean_first: bool = False) -> int:
    """Insert demo quotees, categories and quotes. Returns the number of quotes added."""
    if clean_first:
        for model in _DATA_TABLES:
            await session.execute(delete(model))

    quotees = [Quotee(name=name) for name in DEMO_QUOTEES]
    categories = [Category(name=name) for name in DEMO_CATEGORIES]
    session.add_all([*quotees, *categories])
    await session.flush()

    session.add_all(
        Quote(
            quote_content=content,
            quotee_id=quotees[quotee].id,
            category_id=categories[category].id,
            keywords=keywords,
        )
        for content, quotee, category, keywords in DEMO_QUOTES
    )
    await session.commit()
    return len(DEMO_QUOTES)


async def count_rows(session: AsyncSession) -> dict[str, int]:
    counts = {}
    for model in reversed(_DATA_TABLES):
        counts[model.__tablename__] = await session.scalar(select(func.count()).select_from(model))
    return counts


async def _run(args: argparse.Namespace) -> int:
    engine = create_fresh_async_engine(to_async_url(args.url))
    session_maker = async_sessionmaker(bind=engine, expire_on_commit=False)

    try:
        if args.command == "init":
            log_info("Creating tables...")
            await create_schema(engine)
            log_success("Schema ready")
            if args.demo:
                async with session_maker() as session:
                    added = await seed_demo_data(session)
                log_success(f"Loaded {added} demo quotes")

        elif args.command == "reset":
            if not args.force:
                log_error("Refusing to drop tables without --yes")
                return 2
            log_warning("Dropping and recreating tables...")
            await create_schema(engine, drop_first=True)
            log_success("Database reset complete!")

        elif args.command == "seed":
            async with session_maker() as session:
                added = await seed_demo_data(session, clean_first=args.clean_first)
            log_success(f"Loaded {added} demo quotes")

        elif args.command == "verify":
            async with session_maker() as session:
                for table, count in (await count_rows(session)).items():
                    log_success(f"{table}: {count} rows")

    except SQLAlchemyError as e:
        log_error(f"{args.command} failed: {type(e).__name__}: {e}")
        return 1
    finally:
        await engine.dispose()

    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Database setup for the Quotes API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--url",
        help="Database URL (overrides DATABASE_URL_APP)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init", help="Create tables")
    init_parser.add_argument("--demo", action="store_true", help="Include demo data")

    reset_parser = subparsers.add_parser("reset", help="Drop and recreate tables")
    reset_parser.add_argument(
        "--force",
        "--yes",
        "-y",
        dest="force",
        action="store_true",
        help="Confirm the drop (--yes or -y also accepted)",
    )

    seed_parser = subparsers.add_parser("seed", help="Load demo data")
    seed_parser.add_argument(
        "--clean-first", action="store_true", help="Delete existing rows before seeding"
    )

    subparsers.add_parser("verify", help="Print row counts")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    if args.url is None:
        args.url = settings.async_url

    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
