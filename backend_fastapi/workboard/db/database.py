from contextlib import contextmanager
from typing import Iterator, Optional
import logging

from mongoengine import Document, connect, disconnect, get_connection
from mongoengine.errors import NotUniqueError
from mongoengine.queryset import QuerySet
from pymongo.client_session import ClientSession
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class Database:
    """Handle on the MongoDB connection used by the services.

    The process entry point creates one instance, calls :meth:`connect` at
    startup and :meth:`close` at shutdown. Services receive it explicitly and
    use :meth:`transaction` for every operation that writes more than one
    document.
    """

    def __init__(self, uri: str, db_name: str, use_transactions: bool = True, alias: str = "default", **connect_kwargs):
        self.uri = uri
        self.db_name = db_name
        self.use_transactions = use_transactions
        self.alias = alias
        self.connect_kwargs = connect_kwargs

    def connect(self) -> None:
        # mongoengine's `db` param overrides any db name in the host URI for this alias.
        print(f"Connecting to MongoDB - Host: {self.uri}, DB: {self.db_name}")
        try:
            connect(db=self.db_name, host=self.uri, alias=self.alias, **self.connect_kwargs)
            conn = get_connection(self.alias)
            conn.admin.command("ping")
            logger.info(f"Successfully connected to MongoDB. DB Name: {self.db_name}")
        except Exception as e:
            logger.error(f"Could not connect to MongoDB (DB: {self.db_name}, URI: {self.uri}): {e}")
            raise

    def close(self) -> None:
        try:
            disconnect(alias=self.alias)
            logger.info("Successfully disconnected from MongoDB.")
        except Exception as e:
            logger.error(f"Error disconnecting from MongoDB: {e}")

    def ping(self) -> bool:
        try:
            get_connection(self.alias).admin.command("ping")
            return True
        except Exception as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    @contextmanager
    def transaction(self, name: Optional[str] = None) -> Iterator[Optional[ClientSession]]:
        """Run the enclosed writes as one unit and yield the session they must use.

        Writes join the transaction by going through :func:`save_document`,
        :func:`delete_document`, :func:`update_matching` and
        :func:`delete_matching` with the yielded session. An exception inside
        the block aborts the transaction and is re-raised; the session is
        always ended. With transactions disabled (standalone server, tests)
        the block gets ``None`` and writes go straight to the connection.
        """
        label = name or "transaction"
        if not self.use_transactions:
            yield None
            return
        session = get_connection(self.alias).start_session()
        try:
            session.start_transaction()
            try:
                yield session
            except Exception as e:
                session.abort_transaction()
                logger.warning(f"Rolled back {label}: {e}")
                raise
            session.commit_transaction()
        finally:
            session.end_session()


def save_document(document: Document, session: Optional[ClientSession] = None) -> Document:
    """Validate and store ``document``, inside ``session`` when one is open."""
    if session is None:
        return document.save()
    document.validate()
    son = document.to_mongo()
    try:
        document._get_collection().replace_one({"_id": son["_id"]}, son, upsert=True, session=session)
    except DuplicateKeyError as e:
        raise NotUniqueError(str(e))
    document._created = False
    document._clear_changed_fields()
    return document


def delete_document(document: Document, session: Optional[ClientSession] = None) -> None:
    if session is None:
        document.delete()
        return
    document._get_collection().delete_one({"_id": document.to_mongo()["_id"]}, session=session)


def update_matching(queryset: QuerySet, update: dict, session: Optional[ClientSession] = None) -> int:
    """Apply a raw update document to every match of ``queryset``.

    Raw operators skip field validation, so ``{"$inc": {"position": -1}}``
    can shift a ``min_value=0`` field down.
    """
    if session is None:
        return queryset.update(__raw__=update)
    return queryset._collection.update_many(queryset._query, update, session=session).modified_count


def delete_matching(queryset: QuerySet, session: Optional[ClientSession] = None) -> int:
    if session is None:
        return queryset.delete()
    return queryset._collection.delete_many(queryset._query, session=session).deleted_count
