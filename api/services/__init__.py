# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - External integrations and side effects.
"""

from .mongodb import (
    MongoDBService,
    ProcedureRepository,
    PaginationResult,
    get_mongodb_service,
    get_procedure_repository,
    close_mongodb_connection
)
from .hal import HalFormatter, create_hal_formatter

__all__ = [
    "MongoDBService",
    "ProcedureRepository",
    "PaginationResult",
    "get_mongodb_service",
    "get_procedure_repository",
    "close_mongodb_connection",
    "HalFormatter",
    "create_hal_formatter"
]
