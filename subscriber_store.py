"""
MongoDB persistence for newsletter subscribers.
"""
import logging
from typing import List

from pymongo import DESCENDING, MongoClient
from pymongo.errors import PyMongoError

import config
from data_models import Subscriber
from exceptions import ConfigurationError, StoreUnavailableError

logger = logging.getLogger(__name__)


class SubscriberStore:

    def __init__(self, collection=None, uri: str = None, db_name: str = config.MONGODB_DB):
        self._collection = collection
        self.uri = uri
        self.db_name = db_name

    @classmethod
    def from_config(cls) -> 'SubscriberStore':
        return cls(uri=config.MONGODB_URI, db_name=config.MONGODB_DB)

    @property
    def configured(self) -> bool:
        return self._collection is not None or bool(self.uri)

    @property
    def collection(self):
        if self._collection is None:
            if not self.uri:
                raise ConfigurationError('MONGODB_URI not configured')
            client = MongoClient(self.uri, serverSelectionTimeoutMS=3000, connectTimeoutMS=3000)
            self._collection = client[self.db_name][config.SUBSCRIBER_COLLECTION]
        return self._collection

    def create(self, subscriber: Subscriber) -> Subscriber:
        try:
            self.collection.insert_one(subscriber.to_document())
        except PyMongoError as e:
            raise StoreUnavailableError(f"Could not save subscriber: {e}") from e
        logger.info(f"Saved subscriber {subscriber.email}")
        return subscriber

    def list_recent(self) -> List[Subscriber]:
        try:
            docs = list(self.collection.find({}).sort('createdAt', DESCENDING))
        except PyMongoError as e:
            raise StoreUnavailableError(f"Could not list subscribers: {e}") from e
        return [Subscriber.from_document(doc) for doc in docs]
