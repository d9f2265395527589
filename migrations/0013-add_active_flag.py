"""Mark every CoolStuff document active."""

from mongo_migrate.core.logging import MigrationLogger

logger = MigrationLogger(__name__)


async def up(db) -> None:
    collection = db.get_collection("CoolStuff")

    logger.log("Adding isActive flag to all CoolStuff...")

    await collection.update_many({}, {"$set": {"isActive": True}})
