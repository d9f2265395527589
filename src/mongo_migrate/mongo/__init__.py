"""MongoDB database collaborator."""

from mongo_migrate.mongo.client import MongoProvider

__all__ = ["MongoProvider"]
