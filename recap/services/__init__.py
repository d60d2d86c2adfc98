"""
Upload lifecycle services: aggregation, folder membership and deletion.
"""

from recap.services.aggregator import UploadAggregator, build_upload_view, rank_key_points
from recap.services.deletion import BulkDeletionResult, DeletionCoordinator, DeletionResult
from recap.services.folders import AssignmentOutcome, FolderManager, FolderMembershipResolver

__all__ = [
    "UploadAggregator",
    "build_upload_view",
    "rank_key_points",
    "FolderMembershipResolver",
    "FolderManager",
    "AssignmentOutcome",
    "DeletionCoordinator",
    "DeletionResult",
    "BulkDeletionResult",
]
