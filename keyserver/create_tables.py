# create_tables.py
import asyncio
from keyserver.core.database import engine, init_db

async def main():
    print("Creating tables...")
    await init_db()
    print("Tables created successfully!")
    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main())
