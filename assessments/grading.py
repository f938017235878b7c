"""
Grading engine.

Submission scores the objective questions straight away and leaves the
free-form ones for graders. Every grading pass recomputes the aggregate from
scratch: fresh automatic awards from the current answer keys plus the
stored manual grades. A session becomes ``graded`` once every answered
manual question has a grade; unanswered ones count as zero and are not
waited on.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from cores import exceptions
from cores.audit import log_action
from .answers import exam_question, is_answered, next_revision, store_value
from .deadline import compute_deadline
from .models import ExamSession, ManualGrade, ScoringIssue

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


@dataclass
class GradingResult:
    session: ExamSession
    # question id -> awarded points, None while waiting for a grader
    awards: dict = field(default_factory=dict)
    pending: list = field(default_factory=list)
    issues: list = field(default_factory=list)

    @property
    def is_complete(self):
        return not self.pending


def score_objective(question, value):
    if not question.correct_answer:
        raise exceptions.MissingKey(f"Question {question.pk} has no correct answer.")
    # Exact, case-sensitive comparison
    return Decimal(question.points) if value == question.correct_answer else ZERO


def _report_issue(session, question, error):
    issue, created = ScoringIssue.objects.get_or_create(
        session=session,
        question=question,
        code=error.code,
        defaults={'detail': str(error)},
    )
    if created or issue.resolved:
        logger.warning("Session %s: %s Scored 0 pending follow-up.", session.pk, error)
    if issue.resolved:
        issue.resolved = False
        issue.save(update_fields=['resolved'])


def recompute(session, questions=None):
    """Rebuild score, total and status; caller holds the session lock."""
    if questions is None:
        questions = list(session.exam.questions.all())
    answers = {a.question_id: a for a in session.answer_rows.all()}
    grades = {g.question_id: g for g in session.manual_grades.all()}

    result = GradingResult(session=session)
    score = ZERO
    for question in questions:
        answer = answers.get(question.pk)
        if question.is_objective:
            try:
                award = score_objective(question, answer.value if answer else "")
            except exceptions.MissingKey as e:
                _report_issue(session, question, e)
                result.issues.append(e)
                award = ZERO
        else:
            grade = grades.get(question.pk)
            if grade is not None:
                award = min(grade.awarded_points, Decimal(question.points))
            elif is_answered(question, answer):
                result.pending.append(question.pk)
                result.awards[question.pk] = None
                continue
            else:
                award = ZERO
        result.awards[question.pk] = award
        score += award

    missing = [q.pk for q in questions if q.is_objective and not q.correct_answer]
    (
        session.scoring_issues
        .filter(code=exceptions.MissingKey.code, resolved=False)
        .exclude(question_id__in=missing)
        .update(resolved=True)
    )

    session.score = score
    session.total_points = sum(q.points for q in questions)
    if result.is_complete and session.can_move_to(ExamSession.Status.GRADED):
        session.status = ExamSession.Status.GRADED
    session.save(update_fields=['score', 'total_points', 'status'])
    return result


def _as_int(question_id):
    try:
        return int(question_id)
    except (TypeError, ValueError):
        raise exceptions.ValidationError(f"Question {question_id} is not part of this exam.")


def submit(session_id, final_answers=None, client_auto_submit=False, now=None, actor=None):
    """
    Close the attempt and run the automatic grading pass.

    ``now`` is always server time. Whether the submission counts as
    automatic is decided against the deadline; the client's claim is only
    logged.
    """
    now = now or timezone.now()
    with transaction.atomic():
        try:
            session = ExamSession.objects.select_for_update().get(pk=session_id)
        except ExamSession.DoesNotExist:
            raise exceptions.ValidationError("Session not found.")
        if session.status != ExamSession.Status.IN_PROGRESS:
            raise exceptions.AlreadySubmitted()

        auto_submitted = now > compute_deadline(session)
        if client_auto_submit and not auto_submitted:
            logger.info("Session %s: client reported a timeout before the deadline; recorded as voluntary", session.pk)

        questions = list(session.exam.questions.all())
        by_id = {q.pk: q for q in questions}
        for question_id, value in (final_answers or {}).items():
            question = by_id.get(_as_int(question_id))
            if question is None:
                raise exceptions.ValidationError(f"Question {question_id} is not part of this exam.")
            if question.question_type == question.QuestionType.FILE_UPLOAD:
                # Only uploads confirmed through attach_file count
                continue
            store_value(session, question, value, next_revision())

        session.submitted_at = now
        session.auto_submitted = auto_submitted
        session.status = ExamSession.Status.SUBMITTED
        session.save(update_fields=['submitted_at', 'auto_submitted', 'status'])

        result = recompute(session, questions)
        log_action(
            actor,
            'AUTO_SUBMIT' if auto_submitted else 'SUBMIT',
            session,
            f"Score {session.score}/{session.total_points}, {len(result.pending)} awaiting manual grading",
        )

    logger.info(
        "Session %s submitted (auto=%s): %s/%s, pending=%s",
        session.pk, auto_submitted, session.score, session.total_points, result.pending,
    )
    return result


def _as_points(value):
    try:
        points = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise exceptions.ValidationError("Points must be a number.")
    if not points.is_finite():
        raise exceptions.ValidationError("Points must be a number.")
    if points != points.quantize(Decimal('0.01')):
        raise exceptions.ValidationError("Points allow at most two decimal places.")
    return points


def apply_manual_grade(session_id, question_id, grader, awarded_points, feedback="", now=None):
    """
    Record (or overwrite) the grade for one question and recompute the
    session total. Only that question's grade row is written.
    """
    points = _as_points(awarded_points)
    now = now or timezone.now()
    with transaction.atomic():
        try:
            session = ExamSession.objects.select_for_update().get(pk=session_id)
        except ExamSession.DoesNotExist:
            raise exceptions.ValidationError("Session not found.")
        if session.status == ExamSession.Status.IN_PROGRESS:
            raise exceptions.NotYetSubmitted()

        question = exam_question(session, question_id)
        if not question.is_manual:
            raise exceptions.ValidationError("Only short answer, essay and file questions are graded manually.")
        if points < 0 or points > question.points:
            raise exceptions.OutOfRange(f"Points must be between 0 and {question.points}.")
        answer = session.answer_rows.filter(question=question).first()
        if not is_answered(question, answer):
            raise exceptions.ValidationError("Unanswered questions score 0 and cannot be graded.")

        grade, created = ManualGrade.objects.update_or_create(
            session=session,
            question=question,
            defaults={
                'grader': grader,
                'awarded_points': points,
                'feedback': feedback or "",
                'graded_at': now,
            },
        )
        result = recompute(session)
        log_action(
            grader,
            'GRADE',
            grade,
            f"{'Graded' if created else 'Regraded'} question {question.pk} of session {session.pk}: {points}/{question.points}",
        )

    logger.info("Session %s question %s graded %s by %s", session.pk, question.pk, points, grader.pk)
    return result
