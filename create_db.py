import asyncio
from urllib.parse import urlsplit, urlunsplit

import asyncpg

from flycargo.common.constants import Region
from flycargo.config import settings


async def create_region_db(region: Region) -> None:
    dsn = settings.database.dsn_for(region)
    parts = urlsplit(dsn)
    db_name = parts.path.lstrip("/")

    # Connect to default postgres DB to create new DB
    sys_conn = await asyncpg.connect(urlunsplit(parts._replace(path="/postgres")))
    try:
        exists = await sys_conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name)
        if not exists:
            print(f"Creating database {db_name} ({region.value})...")
            await sys_conn.execute(f'CREATE DATABASE "{db_name}"')
            print("Database created.")
        else:
            print(f"Database {db_name} ({region.value}) already exists.")
    finally:
        await sys_conn.close()


async def create_db():
    for region in Region:
        try:
            await create_region_db(region)
        except (OSError, asyncpg.PostgresError) as e:
            print(f"Error [{region.value}]: {e}")


if __name__ == "__main__":
    asyncio.run(create_db())
