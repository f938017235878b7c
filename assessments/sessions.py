"""
Session manager: at most one attempt per (exam, participant).
"""
import logging

from django.utils import timezone

from cores import exceptions
from .models import ExamSession
from . import deadline

logger = logging.getLogger(__name__)


def open_or_resume(exam, participant, now=None):
    """
    Return ``(session, created)`` for the participant's attempt at ``exam``.

    Creation goes through the (exam, participant) unique constraint, so two
    concurrent opens end up with the same row: ``get_or_create`` re-reads the
    winner's session when its own insert loses. A finished attempt, or one
    whose deadline passed while the participant was away, is refused.
    """
    now = now or timezone.now()
    session, created = ExamSession.objects.get_or_create(
        exam=exam,
        participant=participant,
        defaults={'started_at': now},
    )
    if created:
        logger.info("Session %s opened: exam=%s participant=%s", session.pk, exam.pk, participant.pk)
        return session, True

    if session.status != ExamSession.Status.IN_PROGRESS:
        raise exceptions.AlreadyCompleted()

    if deadline.is_expired(session, now):
        deadline.force_submit(session.pk, now)
        raise exceptions.AlreadyCompleted("Time expired; your answers were submitted automatically.")

    logger.debug("Session %s resumed", session.pk)
    return session, False


def get_session(exam_id, participant_id):
    return (
        ExamSession.objects
        .select_related('exam', 'participant')
        .filter(exam_id=exam_id, participant_id=participant_id)
        .first()
    )


def list_sessions(exam_id):
    return (
        ExamSession.objects
        .select_related('exam', 'participant')
        .filter(exam_id=exam_id)
        .order_by('started_at')
    )
