"""
RepairDesk Backend — Record Store
==================================

What:  insert(table="repair_requests", record) → record with id and
       created_at, or PersistError.
How:   SqlRecordStore adds the ORM row, commits, and refreshes it so the
       store-assigned columns are populated. Store failures are rolled back,
       logged with detail, and re-raised as PersistError (generic message).
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from repairdesk.exceptions import PersistError
from repairdesk.models.repair_request import RepairRequest
from repairdesk.schemas.repair_request import RepairRequestRecord

logger = logging.getLogger(__name__)

REPAIR_REQUESTS_TABLE = RepairRequest.__tablename__


class RecordStore(ABC):

    @abstractmethod
    async def insert(self, table: str, record: Dict[str, Any]) -> RepairRequestRecord:
        """
        Persist one record.

        Raises:
            PersistError: The store rejected or failed the write.
        """
        ...


class SqlRecordStore(RecordStore):
    """RecordStore on an async SQLAlchemy session."""

    _MODELS = {REPAIR_REQUESTS_TABLE: RepairRequest}

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, table: str, record: Dict[str, Any]) -> RepairRequestRecord:
        model = self._MODELS.get(table)
        if model is None:
            raise PersistError(context={"table": table, "reason": "unknown table"})

        row = model(**record)
        try:
            self.session.add(row)
            await self.session.commit()
            await self.session.refresh(row)
        except SQLAlchemyError as e:
            logger.error("Insert into %s failed: %s", table, str(e), exc_info=True)
            await self.session.rollback()
            raise PersistError(context={"table": table, "error_type": type(e).__name__}) from e

        logger.info("Stored %s row %s", table, row.id)
        return RepairRequestRecord.model_validate(row)
