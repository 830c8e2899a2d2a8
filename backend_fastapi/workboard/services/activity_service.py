from typing import Any, Dict, Optional
import logging
import uuid

from workboard.db.models.activity_model_db import ActivityEntry
from workboard.db.models.base_model_db import as_ref
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel

logger = logging.getLogger(__name__)


class ActivityService:
    """Append-only workspace activity feed. Never fails the calling operation."""

    def log(self, workspace_id: uuid.UUID, user_id: Optional[uuid.UUID], action: str, entity_type: str,
            entity_id: Any = None, metadata: Optional[Dict[str, Any]] = None) -> None:
        try:
            ActivityEntry(
                workspace=as_ref(WorkspaceDBModel, workspace_id),
                user=as_ref(UserDBModel, user_id),
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                metadata=metadata or {},
            ).save()
        except Exception as e:
            logger.error(f"Activity log error ({action} {entity_type} {entity_id}): {e}")

    def recent(self, workspace_id: uuid.UUID, limit: int = 50):
        return list(ActivityEntry.objects(workspace=workspace_id).order_by('-created_at').limit(limit))
