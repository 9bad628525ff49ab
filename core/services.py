import logging

from django.contrib.contenttypes.models import ContentType

from .models import DomainActivity

logger = logging.getLogger("teammatch.core")


class ActivityService:
    @staticmethod
    def log_activity(actor, verb, target, visibility=DomainActivity.VISIBILITY_TEAM, metadata=None):
        """
        Records a state transition in the activity ledger.

        Callers invoke this inside their own transaction.atomic() block, so the
        ledger row commits or rolls back together with the transition itself.
        """
        if metadata is None:
            metadata = {}

        activity = DomainActivity.objects.create(
            actor=actor,
            verb=verb,
            content_type=ContentType.objects.get_for_model(target),
            object_id=target.pk,
            visibility=visibility,
            metadata=metadata,
        )
        logger.debug("Activity %s recorded for %s #%s", verb, target.__class__.__name__, target.pk)
        return activity

    @staticmethod
    def activities_for(target):
        ct = ContentType.objects.get_for_model(target)
        return DomainActivity.objects.filter(content_type=ct, object_id=target.pk)
