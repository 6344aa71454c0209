from accounts.connections.mongo import init_mongo, close_mongo, mongo_lifespan

__all__ = ["init_mongo", "close_mongo", "mongo_lifespan"]
