"""
Time window gate: decides whether a requester may open an exam right now.

Stateless. The tenant comparison uses the course that owns the exam; an exam
whose own tenant disagrees with its course's tenant is refused outright.
"""
import enum
import logging

from django.utils import timezone

from cores import exceptions

logger = logging.getLogger(__name__)


class Availability(enum.Enum):
    ALLOW = "allow"
    NOT_YET_OPEN = "not_yet_open"
    CLOSED = "closed"
    TENANT_MISMATCH = "tenant_mismatch"


_ERRORS = {
    Availability.NOT_YET_OPEN: exceptions.NotYetOpen,
    Availability.CLOSED: exceptions.Closed,
    Availability.TENANT_MISMATCH: exceptions.TenantMismatch,
}


def _tenant_id(tenant):
    return getattr(tenant, 'pk', tenant)


def check(exam, requester_tenant, now=None):
    now = now or timezone.now()

    owner_id = exam.course.tenant_id
    if exam.tenant_id != owner_id:
        logger.warning("Exam %s tenant %s disagrees with course tenant %s", exam.pk, exam.tenant_id, owner_id)
        return Availability.TENANT_MISMATCH
    if requester_tenant is None or _tenant_id(requester_tenant) != owner_id:
        return Availability.TENANT_MISMATCH

    if exam.available_from and now < exam.available_from:
        return Availability.NOT_YET_OPEN
    if exam.available_until and now > exam.available_until:
        return Availability.CLOSED
    return Availability.ALLOW


def require_open(exam, requester_tenant, now=None):
    """Raise the matching WindowError unless ``check`` allows the request."""
    result = check(exam, requester_tenant, now)
    if result is not Availability.ALLOW:
        raise _ERRORS[result]()
    return result
