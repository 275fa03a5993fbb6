# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and the procedure repository.
"""

import os
import logging
from typing import List, Dict, Optional, Any
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError, PyMongoError
from bson import ObjectId
from bson.errors import InvalidId
from pydantic import ValidationError

from models.base import ensure_aware
from models.entities import Procedure
from models.enums import ProcedureSortKey, SortDirection
from domain.procedures import ProcedureFilters, filter_procedures, sort_procedures, mask_id

logger = logging.getLogger(__name__)

PROCEDURES_COLLECTION = "procedures"


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Any], total: int, page: int, page_size: int):
        self.items = items
        self.total = total
        self.page = page
        self.page_size = page_size
        self.total_pages = (total + page_size - 1) // page_size
        self.has_next = page < self.total_pages
        self.has_prev = page > 1


class MongoDBService:
    """MongoDB service with lazy client creation and connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/procedures_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'procedures_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info("MongoDB service initialized", extra={'database': self.database_name})

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    tz_aware=True,
                    retryWrites=True,
                    retryReads=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise

        return self._client

    @property
    def database(self) -> Database:
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except PyMongoError as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }


class ProcedureRepository:
    """Persistence of procedures in the 'procedures' collection."""

    def __init__(self, mongodb_service: MongoDBService, collection_name: str = PROCEDURES_COLLECTION):
        self.mongodb_service = mongodb_service
        self.collection_name = collection_name

    @property
    def collection(self) -> Collection:
        return self.mongodb_service.get_collection(self.collection_name)

    @staticmethod
    def _validate_object_id(doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    @staticmethod
    def _to_procedure(document: Dict[str, Any]) -> Optional[Procedure]:
        try:
            return Procedure.from_document(document)
        except ValidationError as e:
            # One malformed document must not break a whole listing
            logger.warning(
                "Skipping malformed procedure document",
                extra={'procedure_id': mask_id(str(document.get('_id'))), 'error_count': e.error_count()}
            )
            return None

    @staticmethod
    def build_query(filters: ProcedureFilters) -> Dict[str, Any]:
        """
        Build the MongoDB pre-filter for indexed criteria.

        Free-text search and destination matching run on the loaded models so
        that 'Autre' overrides are matched the same way they are displayed.
        """
        query: Dict[str, Any] = {}

        if not filters.include_deleted:
            query["isDeleted"] = {"$ne": True}

        if filters.status:
            query["statut"] = filters.status.value

        if filters.email:
            query["email"] = filters.email.strip().lower()

        created_range = {}
        if filters.date_from:
            created_range["$gte"] = ensure_aware(filters.date_from)
        if filters.date_to:
            created_range["$lte"] = ensure_aware(filters.date_to)
        if created_range:
            query["createdAt"] = created_range

        return query

    def health_check(self) -> Dict[str, Any]:
        return self.mongodb_service.health_check()

    def find_by_id(self, procedure_id: str) -> Optional[Procedure]:
        """Find a procedure by ID, None when missing or the ID is malformed."""
        try:
            object_id = self._validate_object_id(procedure_id)
        except ValueError:
            logger.debug("Invalid procedure ID requested", extra={'procedure_id': mask_id(procedure_id)})
            return None

        document = self.collection.find_one({"_id": object_id})
        if document is None:
            return None

        return Procedure.from_document(document)

    def find_all(self, filters: Optional[ProcedureFilters] = None) -> List[Procedure]:
        """Load every procedure matching the filters, in storage order."""
        filters = filters or ProcedureFilters()
        documents = self.collection.find(self.build_query(filters))

        procedures = [p for p in (self._to_procedure(doc) for doc in documents) if p is not None]
        return filter_procedures(procedures, filters)

    def paginate(
        self,
        filters: Optional[ProcedureFilters] = None,
        sort_key: ProcedureSortKey = ProcedureSortKey.CREATED_AT,
        direction: SortDirection = SortDirection.DESC,
        page: int = 1,
        page_size: int = 20
    ) -> PaginationResult:
        """Filter, sort and paginate procedures."""
        procedures = sort_procedures(self.find_all(filters), sort_key, direction)

        skip = (page - 1) * page_size
        items = procedures[skip:skip + page_size]

        logger.debug(
            "Paginated procedures",
            extra={'page': page, 'page_size': page_size, 'returned': len(items), 'total': len(procedures)}
        )
        return PaginationResult(items, len(procedures), page, page_size)

    def save(self, procedure: Procedure) -> Procedure:
        """Insert or replace a procedure document."""
        document = procedure.to_document()
        self.collection.replace_one({"_id": document["_id"]}, document, upsert=True)

        logger.info(
            "Procedure saved",
            extra={'procedure_id': mask_id(procedure.id), 'status': procedure.status.value}
        )
        return procedure

    def create_indexes(self) -> None:
        """Create performance indexes for the procedures collection."""
        try:
            logger.info("Creating MongoDB indexes...")
            collection = self.collection
            collection.create_index([("email", ASCENDING), ("createdAt", DESCENDING)])
            collection.create_index([("statut", ASCENDING), ("createdAt", DESCENDING)])
            collection.create_index([("isDeleted", ASCENDING)])
            collection.create_index("rendezVousId", unique=True, sparse=True)
            logger.info("MongoDB indexes created successfully")
        except PyMongoError as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instances for application use
_mongodb_service: Optional[MongoDBService] = None
_procedure_repository: Optional[ProcedureRepository] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def get_procedure_repository() -> ProcedureRepository:
    """Get singleton procedure repository bound to the shared MongoDB service."""
    global _procedure_repository
    if _procedure_repository is None:
        _procedure_repository = ProcedureRepository(get_mongodb_service())
    return _procedure_repository


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service, _procedure_repository
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
    _procedure_repository = None
