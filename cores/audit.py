from .models import AuditLog


def log_action(actor, action, target, details=""):
    """Write one AuditLog row for ``target`` (any saved model instance)."""
    if actor is not None and not getattr(actor, 'is_authenticated', False):
        actor = None
    return AuditLog.objects.create(
        actor=actor,
        action=action,
        target_model=type(target).__name__,
        target_object_id=str(target.pk),
        details=details,
    )
