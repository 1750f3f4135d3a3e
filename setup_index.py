"""
One-off setup script for the Nabook backend.
Verifies configuration and the database, then creates the vector index.

    python setup_index.py
"""
import asyncio
import sys

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(message: str, status: bool):
    """Print colored status message."""
    symbol = f"{GREEN}✓{RESET}" if status else f"{RED}✗{RESET}"
    print(f"{symbol} {message}")


async def main() -> int:
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}Nabook Backend - Vector Index Setup{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

    try:
        from app.config import settings
    except Exception as e:
        print_status(f"Configuration invalid: {e}", False)
        print(f"  {YELLOW}Set the required variables in .env (see app/config.py){RESET}")
        return 1
    print_status("Configuration loaded", True)

    from app.database import close_db, engine, init_db
    from app.services.vector_index import VectorIndexStore

    try:
        await init_db()
        print_status("Session tables ready", True)

        store = VectorIndexStore(engine)
        created = await store.ensure_index()
        print_status(
            f"Vector index '{settings.SEARCH_INDEX_NAME}' "
            f"{'created' if created else 'already exists'} "
            f"(dim={settings.VECTOR_DIMENSION}, hnsw m={settings.HNSW_M}, "
            f"ef_construction={settings.HNSW_EF_CONSTRUCTION})",
            True,
        )
    except Exception as e:
        print_status(f"Setup failed: {e}", False)
        return 1
    finally:
        await close_db()

    print(f"\n{GREEN}Setup completed.{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
