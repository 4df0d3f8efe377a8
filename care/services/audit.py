from typing import Optional, Any, Dict, Union
import logging

from django.contrib.auth import get_user_model

from care.models import AuditEvent

User = get_user_model()
logger = logging.getLogger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None,
               object_id: Optional[Union[int, str]]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    logger.info("audit %s %s:%s by %s", action, object_type, object_id, getattr(user, 'pk', None))
    return AuditEvent.objects.create(
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )
