"""Copy the trailing number of each CoolStuff name into a ``data`` field."""

import re

from mongo_migrate.core.logging import MigrationLogger

logger = MigrationLogger(__name__)

TRAILING_NUMBER = re.compile(r"(\d+)$")


async def up(db) -> None:
    logger.log("Adding data to CoolStuff...")

    collection = db.get_collection("CoolStuff")
    documents = await collection.find({}).to_list()

    logger.log(f"Found {len(documents)} documents to process")

    for doc in documents:
        name = doc.get("name")
        if not isinstance(name, str):
            logger.log(f"Document {doc['_id']} has no valid name field")
            continue

        match = TRAILING_NUMBER.search(name)
        if not match:
            logger.log(f"No number found at end of name: {name}")
            continue

        number = int(match.group(1))
        logger.log(f"Processing {name}, extracted number: {number}")
        await collection.update_one({"_id": doc["_id"]}, {"$set": {"data": number}})

    logger.log("Finished adding data field to CoolStuff collection")
