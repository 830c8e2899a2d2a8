from typing import Any, Dict, List, Optional
from datetime import datetime
import uuid

from .common_models import ApiModel

class ActivityPublic(ApiModel):
    id: uuid.UUID
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    metadata: Dict[str, Any] = {}
    user_id: Optional[uuid.UUID] = None
    user_name: Optional[str] = None
    created_at: datetime

class ActivityListData(ApiModel):
    activities: List[ActivityPublic]
