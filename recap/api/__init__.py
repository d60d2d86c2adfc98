"""
API Router module that combines all API endpoints
"""
from fastapi import APIRouter
import logging

from recap.api.folders import router as folders_router
from recap.api.uploads import router as uploads_router

# Set up logging
logger = logging.getLogger(__name__)

# Create the main router that includes all the others
router = APIRouter()

router.include_router(uploads_router)
router.include_router(folders_router)
