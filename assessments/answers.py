"""
Answer store.

Edits are accepted immediately and persisted per question, last write wins.
Ordering comes from a revision stamped when an edit is accepted: a stored
answer is only replaced by a higher revision, so a slow flush can never
overwrite a newer edit. Writing the value that is already stored leaves the
row as it is.
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor

from django.conf import settings
from django.db import OperationalError, close_old_connections, transaction
from django.utils import timezone

from cores import exceptions
from cores.models import PlatformSetting
from exams.models import Question
from .models import ExamSession, SessionAnswer
from . import deadline

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_FILE_TYPES = (
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'text/plain',
)

_revision_lock = threading.Lock()
_last_revision = 0


def next_revision():
    global _last_revision
    with _revision_lock:
        _last_revision = max(_last_revision + 1, time.time_ns())
        return _last_revision


def exam_question(session, question_id):
    try:
        return Question.objects.get(pk=int(question_id), exam_id=session.exam_id)
    except (TypeError, ValueError, Question.DoesNotExist):
        raise exceptions.ValidationError(f"Question {question_id} is not part of this exam.")


def is_answered(question, answer):
    if answer is None or not answer.value.strip():
        return False
    if question.question_type == Question.QuestionType.FILE_UPLOAD:
        # Set only once the upload service handed back a stored file
        return bool(answer.file_url)
    return True


def _lock_in_progress(session_id, now):
    try:
        session = ExamSession.objects.select_for_update().select_related('exam').get(pk=session_id)
    except ExamSession.DoesNotExist:
        raise exceptions.ValidationError("Session not found.")
    if session.status != ExamSession.Status.IN_PROGRESS or deadline.is_expired(session, now):
        raise exceptions.AlreadySubmitted()
    return session


def ensure_open(session_id, now=None):
    """
    Refuse edits to a closed session. A session whose time ran out is
    force-submitted on the spot rather than waiting for the next sweep.
    """
    now = now or timezone.now()
    try:
        session = ExamSession.objects.select_related('exam').get(pk=session_id)
    except ExamSession.DoesNotExist:
        raise exceptions.ValidationError("Session not found.")
    if session.status != ExamSession.Status.IN_PROGRESS:
        raise exceptions.AlreadySubmitted()
    if deadline.is_expired(session, now):
        deadline.force_submit(session.pk, now)
        raise exceptions.AlreadySubmitted("Time expired; your answers were submitted automatically.")
    return session


def store_value(session, question, value, revision, **file_fields):
    """Write one answer row; caller holds the session lock."""
    value = "" if value is None else str(value)
    answer, created = SessionAnswer.objects.select_for_update().get_or_create(
        session=session,
        question=question,
        defaults=dict(value=value, revision=revision, **file_fields),
    )
    if created:
        return answer
    if answer.revision >= revision:
        logger.debug("Session %s question %s: stale revision %s ignored", session.pk, question.pk, revision)
        return answer

    unchanged = answer.value == value and all(getattr(answer, k) == v for k, v in file_fields.items())
    if unchanged:
        # Keep ordering current without touching the visible row
        SessionAnswer.objects.filter(pk=answer.pk).update(revision=revision)
        answer.revision = revision
        return answer

    answer.value = value
    answer.revision = revision
    for field, field_value in file_fields.items():
        setattr(answer, field, field_value)
    answer.save()
    return answer


def record_answer(session_id, question_id, value, revision=None, now=None):
    """``now`` is when the edit was made; edits made after the deadline are refused."""
    now = now or timezone.now()
    if revision is None:
        revision = next_revision()
    ensure_open(session_id, now)
    with transaction.atomic():
        session = _lock_in_progress(session_id, now)
        question = exam_question(session, question_id)
        if question.question_type == Question.QuestionType.FILE_UPLOAD:
            raise exceptions.ValidationError("File answers are recorded through the upload endpoint.")
        return store_value(session, question, value, revision)


def validate_file(question, uploaded_file):
    requirements = question.file_requirements or {}
    allowed = requirements.get('allowed_types') or DEFAULT_ALLOWED_FILE_TYPES
    max_size = requirements.get('max_size_bytes') or PlatformSetting.load().max_upload_mb * 1024 * 1024

    if getattr(uploaded_file, 'content_type', None) not in allowed:
        raise exceptions.ValidationError("File type not supported.")
    if uploaded_file.size > max_size:
        raise exceptions.ValidationError("File size too large.")


def attach_file(session_id, question_id, uploaded_file, client, now=None):
    """
    Store ``uploaded_file`` with the upload service and record its reference
    as the answer. Nothing is recorded until the service confirms the file.
    """
    now = now or timezone.now()
    session = ensure_open(session_id, now)
    question = exam_question(session, question_id)
    if question.question_type != Question.QuestionType.FILE_UPLOAD:
        raise exceptions.ValidationError("This question does not take a file.")
    validate_file(question, uploaded_file)

    stored = client.store(uploaded_file)
    revision = next_revision()
    try:
        with transaction.atomic():
            # The deadline is judged when the upload began
            session = _lock_in_progress(session_id, now)
            previous = (
                SessionAnswer.objects
                .filter(session=session, question=question)
                .values_list('value', flat=True)
                .first()
            )
            answer = store_value(
                session, question, stored.reference_id, revision,
                file_url=stored.url, file_size=stored.size_bytes, file_name=uploaded_file.name,
            )
    except exceptions.ExamError:
        # The session closed while the file was uploading
        _discard(client, stored.reference_id)
        raise

    if previous and previous != stored.reference_id:
        _discard(client, previous)
    logger.info("Session %s question %s: file %s recorded", session.pk, question.pk, stored.reference_id)
    return answer


def _discard(client, reference_id):
    try:
        client.delete(reference_id)
    except exceptions.UploadServiceError as e:
        logger.warning("Orphaned upload %s left in the store: %s", reference_id, e)


class AnswerStore:
    """
    Accepts answer edits without making the caller wait on the database.

    Policy checks run before ``accept`` returns; the write itself happens on
    a worker thread (or inline when ``ANSWER_STORE_ASYNC`` is off) and
    database faults are retried with exponential backoff.
    """

    def __init__(self):
        self._executor = None
        self._lock = threading.Lock()

    def _get_executor(self):
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=getattr(settings, 'ANSWER_STORE_WORKERS', 4),
                    thread_name_prefix='answer-store',
                )
            return self._executor

    def accept(self, session_id, question_id, value, now=None):
        now = now or timezone.now()
        session = ensure_open(session_id, now)
        question = exam_question(session, question_id)
        if question.question_type == Question.QuestionType.FILE_UPLOAD:
            raise exceptions.ValidationError("File answers are recorded through the upload endpoint.")

        revision = next_revision()
        if not getattr(settings, 'ANSWER_STORE_ASYNC', True):
            future = Future()
            try:
                future.set_result(self.persist(session_id, question.pk, value, revision, now))
            except Exception as exc:
                future.set_exception(exc)
                _log_failure(future)
            return future

        future = self._get_executor().submit(self._persist_in_worker, session_id, question.pk, value, revision, now)
        future.add_done_callback(_log_failure)
        return future

    def persist(self, session_id, question_id, value, revision, now=None):
        retries = getattr(settings, 'ANSWER_PERSIST_RETRIES', 3)
        delay = getattr(settings, 'ANSWER_PERSIST_BACKOFF', 0.2)
        attempt = 1
        while True:
            try:
                return record_answer(session_id, question_id, value, revision=revision, now=now)
            except OperationalError as e:
                if attempt >= retries:
                    raise
                logger.warning(
                    "Saving answer for session %s question %s failed (%s); retry %d in %.2fs",
                    session_id, question_id, e, attempt, delay,
                )
                time.sleep(delay)
                delay *= 2
                attempt += 1

    def _persist_in_worker(self, *args):
        close_old_connections()
        try:
            return self.persist(*args)
        finally:
            close_old_connections()

    def shutdown(self, wait=True):
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None


def _log_failure(future):
    exc = future.exception()
    if exc is not None:
        logger.error("Answer edit was not saved: %s", exc)


answer_store = AnswerStore()
