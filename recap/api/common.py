"""
Common dependencies for API routes
"""
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from recap.database import get_db
from recap.exceptions import NotFoundError
from recap.store.objects import ObjectStore, get_object_store
from recap.store.records import RecordStore

# Set up logging
logger = logging.getLogger(__name__)

DbSession = Annotated[Session, Depends(get_db)]


def get_record_store(db: DbSession) -> RecordStore:
    """Record store bound to the request's database session"""
    return RecordStore(db)


Store = Annotated[RecordStore, Depends(get_record_store)]
Objects = Annotated[ObjectStore, Depends(get_object_store)]


def not_found(exc: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
